"""Utility functions for YAML handling"""

import yaml
from yaml.parser import ParserError
from yaml.scanner import ScannerError

from savepath.util.log import logger
from savepath.util.system import path_exists


def read_yaml_from_file(filename: str) -> dict:
    """Read filename and return parsed yaml"""
    if not path_exists(filename):
        return {}
    with open(filename, "r", encoding="utf-8") as yaml_file:
        try:
            yaml_content = yaml.safe_load(yaml_file) or {}
        except (ScannerError, ParserError):
            logger.error("error parsing file %s", filename)
            yaml_content = {}
    if not isinstance(yaml_content, dict):
        logger.error("'%s' does not contain a mapping, and will be ignored.", filename)
        return {}
    return yaml_content
