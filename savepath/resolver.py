"""Resolution of the default save locations of Legendary and GOG games"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Union

from savepath.config import GameConfig, GameSettings
from savepath.discovery import LegendarySavePathDiscovery
from savepath.exceptions import MissingMetadataError, UnknownBackendError
from savepath.game import Backend, CloudSaveLocation, GameIdentity, GameMetadata, Platform
from savepath.library import GOGLibrary, LegendaryLibrary
from savepath.util import system
from savepath.util.log import logger
from savepath.util.wine import get_wine_path

DEFAULT_LOCATION_NAME = "__default"

# Where GOG Galaxy keeps the saves of games not defining any location.
# Every platform a game can be installed for must be listed here.
DEFAULT_LOCATION_TEMPLATES = {
    Platform.WINDOWS: "%LocalAppData%/GOG.com/Galaxy/Applications/{client_id}/Storage/Shared/Files",
    Platform.OSX: "$HOME/Library/Application Support/GOG.com/Galaxy/Applications/{client_id}/Storage",
    Platform.LINUX: "$HOME/Library/Application Support/GOG.com/Galaxy/Applications/{client_id}/Storage",
}

VARIABLE_REGEX = re.compile(r"<\?(\w+)\?>")


class SaveFolderVariable(Enum):
    """Variables GOG uses in its save location templates, as <?NAME?>"""

    INSTALL = "INSTALL"
    SAVED_GAMES = "SAVED_GAMES"
    APPLICATION_DATA_LOCAL = "APPLICATION_DATA_LOCAL"
    APPLICATION_DATA_LOCAL_LOW = "APPLICATION_DATA_LOCAL_LOW"
    APPLICATION_DATA_ROAMING = "APPLICATION_DATA_ROAMING"
    APPLICATION_SUPPORT = "APPLICATION_SUPPORT"
    DOCUMENTS = "DOCUMENTS"


@dataclass
class VariableContext:
    install_path: str
    native: bool


def _get_documents(context: VariableContext) -> str:
    if context.native:
        return system.get_documents_dir()
    return "%USERPROFILE%\\Documents"


VARIABLE_RESOLVERS: Dict[SaveFolderVariable, Callable[[VariableContext], str]] = {
    SaveFolderVariable.INSTALL: lambda context: context.install_path,
    SaveFolderVariable.SAVED_GAMES: lambda _context: "%USERPROFILE%/Saved Games",
    SaveFolderVariable.APPLICATION_DATA_LOCAL: lambda _context: "%LOCALAPPDATA%",
    SaveFolderVariable.APPLICATION_DATA_LOCAL_LOW: lambda _context: "%APPDATA%\\..\\LocalLow",
    SaveFolderVariable.APPLICATION_DATA_ROAMING: lambda _context: "%APPDATA%",
    SaveFolderVariable.APPLICATION_SUPPORT: lambda _context: "$HOME/Library/Application Support",
    SaveFolderVariable.DOCUMENTS: _get_documents,
}


def get_variable_map(install_path: str, native: bool) -> Dict[str, str]:
    """Return the value of every GOG variable for a game"""
    context = VariableContext(install_path=install_path, native=native)
    return {variable.value: VARIABLE_RESOLVERS[variable](context) for variable in SaveFolderVariable}


def expand_variables(template: str, variable_map: Dict[str, str]) -> str:
    """Replace the <?NAME?> variables of a location template.

    Unknown variables are left in place, the user will have to correct the
    path manually.
    """

    def replace_variable(match):
        variable_name = match.group(1)
        if variable_name not in variable_map:
            logger.warning(
                "Unknown save path variable: %s, keeping it in the save path. "
                "User will have to manually correct the path",
                variable_name,
            )
            return match.group(0)
        return variable_map[variable_name]

    return VARIABLE_REGEX.sub(replace_variable, template)


class NativePathResolver:
    """Resolves paths of games running directly on the host"""

    def resolve(self, path: str) -> str:
        absolute_path = system.get_shell_path(path)
        if not system.path_exists(absolute_path):
            logger.warning("%s does not exist, can't resolve its symlinks", absolute_path)
            return absolute_path
        try:
            return system.resolve_symlinks(absolute_path)
        except OSError as ex:
            logger.warning("Failed to run realpath on '%s': %s", absolute_path, ex)
        return absolute_path


class WinePathResolver:
    """Resolves Windows paths of games running in a Wine prefix.
    Wine takes care of symlinks and of . and .. in the path."""

    def __init__(self, game_settings: GameSettings):
        self.game_settings = game_settings

    def resolve(self, path: str) -> str:
        return get_wine_path(path, self.game_settings)


def get_path_resolver(game: GameMetadata, game_config: GameConfig) -> Union[NativePathResolver, WinePathResolver]:
    if game.is_native:
        return NativePathResolver()
    return WinePathResolver(game_config.get_settings(game.appid))


def get_default_location(game: GameMetadata, library: GOGLibrary) -> CloudSaveLocation:
    """Return the location Galaxy uses for games that don't define one"""
    info = library.read_info_file(game.appid) or {}
    client_id = info.get("clientId")
    if not client_id:
        logger.error("No clientId found for %s, the default save location will be incorrect", game.appid)
    template = DEFAULT_LOCATION_TEMPLATES[game.platform]
    return CloudSaveLocation(name=DEFAULT_LOCATION_NAME, location=template.format(client_id=client_id or ""))


def get_game_metadata(library, appid: str) -> GameMetadata:
    game = library.get_game_info(appid)
    if not game:
        raise MissingMetadataError("%s is not installed" % appid, appid=appid)
    return game


def get_default_legendary_save_path(
    appid: str,
    library: Optional[LegendaryLibrary] = None,
    game_config: Optional[GameConfig] = None,
    discovery: Optional[LegendarySavePathDiscovery] = None,
) -> str:
    """Return the save path of a Legendary game, having Legendary compute it
    if it hasn't done so yet. Returns an empty string if it can't be found."""
    library = library or LegendaryLibrary()
    try:
        game = get_game_metadata(library, appid)
    except MissingMetadataError as ex:
        logger.error(ex.message)
        return ""
    if game.save_path:
        logger.debug("Got default save path from game info: %s", game.save_path)
        return game.save_path

    game_config = game_config or GameConfig()
    discovery = discovery or LegendarySavePathDiscovery(config_dir=library.config_dir)
    env = game_config.get_settings(appid).get_env()
    # The tool has to write to the installed.json read back below
    env["LEGENDARY_CONFIG_PATH"] = library.config_dir
    if not discovery.run(appid, env=env):
        return ""

    # Legendary stores the computed path in installed.json
    game = library.get_game_info(appid, force_refresh=True)
    save_path = game.save_path if game else ""
    logger.info("Computed save path: %s", save_path)
    return save_path


def resolve_location(
    location: CloudSaveLocation,
    variable_map: Dict[str, str],
    path_resolver: Union[NativePathResolver, WinePathResolver],
) -> CloudSaveLocation:
    logger.debug("Working on location %s with path %s", location.name, location.location)
    if not location.location:
        logger.warning("No path defined for save location %s", location.name)
        return CloudSaveLocation(name=location.name, location="")
    path = expand_variables(location.location, variable_map)
    logger.debug("Got this path after GOG variable expansion: %s", path)
    absolute_path = path_resolver.resolve(path)
    logger.debug("Resolved location %s to '%s'", location.name, absolute_path)
    return CloudSaveLocation(name=location.name, location=absolute_path)


def get_default_gog_save_paths(
    appid: str,
    already_defined_gog_saves: Optional[List[CloudSaveLocation]] = None,
    library: Optional[GOGLibrary] = None,
    game_config: Optional[GameConfig] = None,
) -> List[CloudSaveLocation]:
    """Return the absolute paths of the save locations of a GOG game.

    Locations of `already_defined_gog_saves` with a path set are returned as
    they are. The result follows the order of the game's locations.
    """
    library = library or GOGLibrary()
    try:
        game = get_game_metadata(library, appid)
        if game.gog_save_location is None or not game.install_path:
            raise MissingMetadataError(
                "gog_save_location/install_path undefined for %s. gog_save_location = %s, install_path = %s"
                % (appid, game.gog_save_location, game.install_path),
                appid=appid,
            )
    except MissingMetadataError as ex:
        logger.error(ex.message)
        return []

    locations = list(game.gog_save_location)
    if not locations:
        locations.append(get_default_location(game, library))

    defined_paths = {location.name: location for location in already_defined_gog_saves or []}
    variable_map = get_variable_map(game.install_path, game.is_native)
    path_resolver = get_path_resolver(game, game_config or GameConfig())

    resolved_locations = []
    for location in locations:
        defined_location = defined_paths.get(location.name)
        if defined_location and defined_location.location:
            logger.debug("Location %s is already defined as %s", location.name, defined_location.location)
            resolved_locations.append(defined_location)
            continue
        resolved_locations.append(resolve_location(location, variable_map, path_resolver))
    return resolved_locations


def get_backend(runner: Union[Backend, str]) -> Backend:
    try:
        return Backend(runner)
    except ValueError as ex:
        raise UnknownBackendError(runner) from ex


def get_default_save_path(
    appid: str,
    runner: Union[Backend, str],
    already_defined_gog_saves: Optional[List[CloudSaveLocation]] = None,
) -> Union[str, List[CloudSaveLocation]]:
    """Return the default save path of a Legendary game, or the save
    locations of a GOG game."""
    backend = get_backend(runner)
    if backend == Backend.LEGENDARY:
        return get_default_legendary_save_path(appid)
    if backend == Backend.GOG:
        return get_default_gog_save_paths(appid, already_defined_gog_saves or [])
    raise UnknownBackendError(runner)


def resolve(
    game: GameIdentity,
    already_defined_gog_saves: Optional[List[CloudSaveLocation]] = None,
) -> Union[str, List[CloudSaveLocation]]:
    return get_default_save_path(game.appid, game.backend, already_defined_gog_saves)
