"""Utilities for translating Windows paths of Wine games"""

import os
import re
from collections import OrderedDict
from typing import Dict, Optional

from savepath.util import system
from savepath.util.log import logger

WINE_DEFAULT_ARCH = "win64"

# Windows variables we know how to map into a prefix without running Wine,
# relative to the user's profile folder
PROFILE_RELATIVE_FOLDERS = {
    "USERPROFILE": "",
    "APPDATA": "AppData/Roaming",
    "LOCALAPPDATA": "AppData/Local",
}
WINDOWS_VARIABLE_REGEX = re.compile(r"%(\w+)%")
DRIVE_LETTER_REGEX = re.compile(r"^([a-zA-Z]):/")


def get_overrides_env(overrides: Dict[str, str]) -> str:
    """
    Output a string of dll overrides usable with WINEDLLOVERRIDES
    See: https://wiki.winehq.org/Wine_User%27s_Guide#WINEDLLOVERRIDES.3DDLL_Overrides
    """
    default_overrides = {"winemenubuilder": ""}
    overrides.update(default_overrides)
    override_buckets = OrderedDict([("n,b", []), ("b,n", []), ("b", []), ("n", []), ("d", []), ("", [])])
    for dll, value in overrides.items():
        if not value:
            value = ""
        value = value.replace(" ", "")
        value = value.replace("builtin", "b")
        value = value.replace("native", "n")
        value = value.replace("disabled", "")
        try:
            override_buckets[value].append(dll)
        except KeyError:
            logger.error("Invalid override value %s", value)
            continue

    override_strings = []
    for value, dlls in override_buckets.items():
        if not dlls:
            continue
        override_strings.append("{}={}".format(",".join(sorted(dlls)), value))
    return ";".join(override_strings)


def get_prefix_user_dir(prefix_path: str, default_user: Optional[str] = None) -> str:
    """Return the profile folder of the user inside a Wine prefix.
    Proton prefixes use 'steamuser' instead of the name of the current user."""
    users_dir = os.path.join(prefix_path, "drive_c", "users")
    user = default_user or os.getenv("USER") or "steamuser"
    if not os.path.isdir(os.path.join(users_dir, user)) and os.path.isdir(os.path.join(users_dir, "steamuser")):
        user = "steamuser"
    return os.path.join(users_dir, user)


def translate_prefix_path(path: str, prefix_path: str, wine_user: Optional[str] = None) -> str:
    """Translate a Windows path into the Wine prefix without running Wine.

    Only the profile variables (%USERPROFILE%, %APPDATA%, %LOCALAPPDATA%)
    and drive letters are handled; anything else is kept as is.
    """
    user_dir = get_prefix_user_dir(prefix_path, wine_user)
    path = path.replace("\\", "/")

    def replace_variable(match):
        folder = PROFILE_RELATIVE_FOLDERS.get(match.group(1).upper())
        if folder is None:
            logger.warning("Can't translate Windows variable %s without Wine", match.group(0))
            return match.group(0)
        return os.path.join(user_dir, folder).rstrip("/")

    path = WINDOWS_VARIABLE_REGEX.sub(replace_variable, path)
    drive_match = DRIVE_LETTER_REGEX.match(path)
    if drive_match:
        path = os.path.join(prefix_path, "drive_%s" % drive_match.group(1).lower(), path[3:])
    return os.path.normpath(path)


def expand_windows_variables(path: str, game_settings) -> str:
    """Expand the %VAR% references of a path with the values Wine has for them.
    Variables Wine doesn't know are kept as they are."""
    values = {}

    def replace_variable(match):
        variable = match.group(0)
        if variable not in values:
            output = system.execute(
                [game_settings.wine_path, "cmd", "/c", "echo", variable],
                env=game_settings.get_env(),
                quiet=True,
            )
            value = output.splitlines()[-1].strip() if output else ""
            if not value or value == variable:
                logger.warning("Wine has no value for %s", variable)
                value = variable
            values[variable] = value
        return values[variable]

    return WINDOWS_VARIABLE_REGEX.sub(replace_variable, path)


def get_wine_path(path: str, game_settings) -> str:
    """Return the Linux path corresponding to a Windows path in a game's prefix.

    Only the %VAR% names go through cmd; the path itself is given to winepath
    as a single argument so characters like & or < in it are kept literally.
    The result is normalized with symlinks resolved. If Wine can't be run,
    the path is translated in place with translate_prefix_path().
    """
    windows_path = expand_windows_variables(path, game_settings)
    output = system.execute(
        [game_settings.wine_path, "winepath", "-u", windows_path],
        env=game_settings.get_env(),
    )
    unix_path = output.splitlines()[-1].strip() if output else ""
    if not unix_path:
        if not game_settings.prefix:
            logger.error("Unable to translate %s: winepath failed and no prefix is set", path)
            return path
        logger.warning("winepath failed for %s, translating it inside %s", path, game_settings.prefix)
        unix_path = translate_prefix_path(path, game_settings.prefix)
    return os.path.realpath(unix_path)
