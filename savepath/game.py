"""Game identities and the metadata needed to locate their saves"""

import sys
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional


class Backend(Enum):
    """Game stores whose save locations can be resolved"""

    LEGENDARY = "legendary"
    GOG = "gog"


class Platform(Enum):
    """Platform a game was installed for"""

    WINDOWS = "windows"
    OSX = "osx"
    LINUX = "linux"

    @classmethod
    def from_string(cls, value: str) -> "Platform":
        """Parse the platform names used by the stores ('Windows', 'Mac', ...)"""
        value = str(value or "").lower()
        if value in ("mac", "macos"):
            return cls.OSX
        if value == "win32":
            return cls.WINDOWS
        return cls(value)


def get_host_platform() -> Platform:
    """Return the platform of the system we are running on"""
    if sys.platform.startswith("win"):
        return Platform.WINDOWS
    if sys.platform == "darwin":
        return Platform.OSX
    return Platform.LINUX


@dataclass(frozen=True)
class GameIdentity:
    appid: str
    backend: Backend


@dataclass
class CloudSaveLocation:
    """A named save location of a GOG game.

    Attributes:
        name: The location identifier (e.g. '__default' or a specific name)
        location: Either a path template with GOG variables
            (e.g. '<?DOCUMENTS?>/My Games/...') or, once resolved, an absolute path
    """

    name: str
    location: str


@dataclass
class GameMetadata:
    """What a store knows about an installed game.

    Legendary games carry a single `save_path`, empty until computed.
    GOG games carry `gog_save_location`: None when unknown, an empty
    list when the game defines no location of its own.
    """

    appid: str
    backend: Backend
    install_path: str = ""
    platform: Platform = Platform.WINDOWS
    save_path: str = ""
    gog_save_location: Optional[List[CloudSaveLocation]] = None
    title: str = ""

    @property
    def is_native(self) -> bool:
        return is_native(self.platform)


def is_native(platform: Platform) -> bool:
    """Return whether a game built for `platform` runs without a compatibility layer"""
    return platform == get_host_platform()
