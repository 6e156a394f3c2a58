"""Per game runtime configuration.

Each game can have a YAML file in the `games` config folder, named after
its appid, describing the Wine setup it runs with:

```
game:
  prefix: ~/Games/epic/prefix
  arch: win64
wine:
  version: /usr/bin/wine
  dll_overrides:
    d3d11: native
system:
  env:
    DXVK_HUD: "1"
```
"""

import os
from dataclasses import dataclass, field
from typing import Dict, Optional

from savepath import settings
from savepath.util.log import logger
from savepath.util.wine import WINE_DEFAULT_ARCH, get_overrides_env
from savepath.util.yaml import read_yaml_from_file


@dataclass
class GameSettings:
    """Runtime settings of a game, as used to run its store's tools"""

    appid: str
    prefix: str = ""
    arch: str = WINE_DEFAULT_ARCH
    wine_path: str = "wine"
    env: Dict[str, str] = field(default_factory=dict)
    dll_overrides: Dict[str, str] = field(default_factory=dict)

    def get_env(self) -> Dict[str, str]:
        """Return the environment variables needed to run Wine for this game"""
        env = {
            "WINEDEBUG": "-all",
            "WINEARCH": self.arch,
            "WINE": self.wine_path,
            "WINEDLLOVERRIDES": get_overrides_env(dict(self.dll_overrides)),
        }
        if self.prefix:
            env["WINEPREFIX"] = self.prefix
        env.update(self.env)
        return env


class GameConfig:
    """Reads game settings from the YAML files in the games config folder"""

    def __init__(self, config_dir: Optional[str] = None):
        self.config_dir = config_dir or settings.GAME_CONFIG_DIR

    def get_config_path(self, appid: str) -> str:
        return os.path.join(self.config_dir, "%s.yml" % appid)

    def get_settings(self, appid: str) -> GameSettings:
        """Return the settings of a game; games without a config file get the defaults"""
        config = read_yaml_from_file(self.get_config_path(appid))
        game_config = config.get("game") or {}
        wine_config = config.get("wine") or {}
        system_config = config.get("system") or {}
        env = system_config.get("env") or {}
        if not isinstance(env, dict):
            logger.error("Invalid environment for %s: %s", appid, env)
            env = {}
        prefix = game_config.get("prefix") or ""
        return GameSettings(
            appid=appid,
            prefix=os.path.expanduser(prefix) if prefix else "",
            arch=game_config.get("arch") or WINE_DEFAULT_ARCH,
            wine_path=wine_config.get("version") or settings.WINE_PATH,
            env={str(key): str(value) for key, value in env.items()},
            dll_overrides=wine_config.get("dll_overrides") or {},
        )
