import configparser
import os

from savepath.util.log import logger


class SettingsIO:
    """ConfigParser abstraction."""

    def __init__(self, config_file):
        self.config_file = config_file
        self.config = configparser.ConfigParser()

        if os.path.exists(self.config_file):
            try:
                self.config.read([self.config_file])
            except configparser.ParsingError as ex:
                logger.error("Failed to read config file %s: %s", self.config_file, ex)
            except UnicodeDecodeError as ex:
                logger.error("Some invalid characters are preventing the setting file from loading properly: %s", ex)

    def read_setting(self, key, default="", section="savepath"):
        """Read a setting from the config file

        Params:
            key (str): Setting key
            section (str): Optional section, default to 'savepath'
            default (str): Default value to return if setting not present
        """
        try:
            return self.config.get(section, key)
        except (configparser.NoOptionError, configparser.NoSectionError):
            return default

    def read_bool_setting(self, key: str, default: bool = False, section="savepath") -> bool:
        text = self.read_setting(key, "", section=section).casefold()
        if text == "true":
            return True
        if text == "false":
            return False

        return default

    def read_float_setting(self, key: str, default: float = 0.0, section="savepath") -> float:
        text = self.read_setting(key, "", section=section)
        if not text:
            return default
        try:
            return float(text)
        except ValueError:
            logger.error("Invalid value for setting %s: %s", key, text)
            return default
