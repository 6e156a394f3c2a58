"""Internal settings."""

import os

from gi.repository import GLib

from savepath import __version__
from savepath.util.settings import SettingsIO

VERSION = __version__

# Paths
CONFIG_DIR = os.path.join(GLib.get_user_config_dir(), "savepath")
DATA_DIR = os.path.join(GLib.get_user_data_dir(), "savepath")
CONFIG_FILE = os.path.join(CONFIG_DIR, "savepath.conf")
sio = SettingsIO(CONFIG_FILE)

GAME_CONFIG_DIR = os.path.join(CONFIG_DIR, "games")

# Legendary keeps its own state, including computed save paths, in installed.json
LEGENDARY_CONFIG_DIR = (
    os.environ.get("LEGENDARY_CONFIG_PATH")
    or sio.read_setting("legendary_config_dir")
    or os.path.join(GLib.get_user_config_dir(), "legendary")
)
LEGENDARY_PATH = sio.read_setting("legendary_path")
GOG_STORE_DIR = sio.read_setting("gog_store_dir") or os.path.join(DATA_DIR, "gog_store")
WINE_PATH = sio.read_setting("wine_path") or "wine"

# Seconds the save path discovery is allowed to run before the tool is killed
DISCOVERY_TIMEOUT = sio.read_float_setting("discovery_timeout", default=120.0)

read_bool_setting = sio.read_bool_setting
