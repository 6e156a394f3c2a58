"""Readers for the game libraries maintained by Legendary and the GOG store"""

import json
import os
from typing import Dict, List, Optional

from savepath import settings
from savepath.game import Backend, CloudSaveLocation, GameMetadata, Platform
from savepath.util.log import logger


def read_json_file(path: str, default=None):
    """Read a JSON file, returning `default` if it is missing or unparseable"""
    if not os.path.isfile(path):
        return default
    try:
        with open(path, "r", encoding="utf-8") as json_file:
            return json.load(json_file)
    except (OSError, ValueError) as ex:
        logger.error("Failed to read '%s': %s", path, ex)
        return default


def parse_platform(value: str, appid: str) -> Platform:
    try:
        return Platform.from_string(value)
    except ValueError:
        logger.warning("Unknown platform '%s' for %s, assuming Windows", value, appid)
        return Platform.WINDOWS


class GameLibrary:
    """Base class for the on-disk library of a store.

    The parsed library is cached; pass `force_refresh` to get_game_info()
    to pick up changes made by the store's own tools.
    """

    backend: Backend

    def __init__(self):
        self._games: Optional[Dict[str, GameMetadata]] = None

    def load(self) -> Dict[str, GameMetadata]:
        raise NotImplementedError

    def get_game_info(self, appid: str, force_refresh: bool = False) -> Optional[GameMetadata]:
        """Return the metadata of an installed game, or None if it isn't installed"""
        if self._games is None or force_refresh:
            self._games = self.load()
        return self._games.get(appid)


class LegendaryLibrary(GameLibrary):
    """Games installed with Legendary, read from its installed.json"""

    backend = Backend.LEGENDARY

    def __init__(self, config_dir: Optional[str] = None):
        super().__init__()
        self.config_dir = config_dir or settings.LEGENDARY_CONFIG_DIR

    @property
    def installed_path(self) -> str:
        return os.path.join(self.config_dir, "installed.json")

    def load(self) -> Dict[str, GameMetadata]:
        installed = read_json_file(self.installed_path, default={})
        if not isinstance(installed, dict):
            logger.error("Unexpected content in %s", self.installed_path)
            return {}
        games = {}
        for appid, game in installed.items():
            if not isinstance(game, dict):
                logger.error("Ignoring invalid entry %s in %s", appid, self.installed_path)
                continue
            games[appid] = GameMetadata(
                appid=appid,
                backend=self.backend,
                install_path=game.get("install_path") or "",
                platform=parse_platform(game.get("platform", "Windows"), appid),
                save_path=game.get("save_path") or "",
                title=game.get("title") or "",
            )
        return games


class GOGLibrary(GameLibrary):
    """Installed GOG games, read from the store's installed.json"""

    backend = Backend.GOG

    def __init__(self, store_dir: Optional[str] = None):
        super().__init__()
        self.store_dir = store_dir or settings.GOG_STORE_DIR

    @property
    def installed_path(self) -> str:
        return os.path.join(self.store_dir, "installed.json")

    @staticmethod
    def parse_save_locations(locations) -> Optional[List[CloudSaveLocation]]:
        if locations is None:
            return None
        return [
            CloudSaveLocation(name=str(loc["name"]), location=str(loc.get("location") or "")) for loc in locations
        ]

    def load(self) -> Dict[str, GameMetadata]:
        data = read_json_file(self.installed_path, default={})
        installed = data.get("installed", []) if isinstance(data, dict) else []
        if not isinstance(installed, list):
            logger.error("Unexpected content in %s", self.installed_path)
            return {}
        games = {}
        for game in installed:
            if not isinstance(game, dict):
                logger.error("Ignoring invalid entry in %s: %s", self.installed_path, game)
                continue
            appid = str(game.get("appName", ""))
            if not appid:
                continue
            try:
                save_locations = self.parse_save_locations(game.get("gog_save_location"))
            except (AttributeError, KeyError, TypeError):
                logger.error("Invalid save locations for GOG game %s", appid)
                save_locations = None
            games[appid] = GameMetadata(
                appid=appid,
                backend=self.backend,
                install_path=game.get("install_path") or "",
                platform=parse_platform(game.get("platform", "windows"), appid),
                gog_save_location=save_locations,
                title=game.get("title") or "",
            )
        return games

    def get_info_file_path(self, game: GameMetadata) -> str:
        """Return the path of the goggame-<appid>.info file shipped with a game"""
        base_path = game.install_path
        if game.platform == Platform.OSX:
            base_path = os.path.join(base_path, "Contents", "Resources")
        return os.path.join(base_path, "goggame-%s.info" % game.appid)

    def read_info_file(self, appid: str) -> Optional[dict]:
        """Return the content of the game's info file, which holds its clientId"""
        game = self.get_game_info(appid)
        if not game or not game.install_path:
            logger.error("Can't read info file of %s, game is not installed", appid)
            return None
        info_path = self.get_info_file_path(game)
        info = read_json_file(info_path)
        if info is None:
            logger.warning("No info file found at %s", info_path)
        return info
