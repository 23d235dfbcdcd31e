"""Config parser logic."""

import os
from typing import Any, Dict, Optional
import logging
import yaml

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".gh-stack.yaml"

RawConfig = Dict[str, Dict[str, Any]]

def parse_config(directory: Optional[str] = None) -> RawConfig:
    """Parse config from the defaults and an optional .gh-stack.yaml.

    Args:
        directory: Where to look for the config file, defaults to cwd
    """
    config: RawConfig = {
        'repo': {
            'github_remote': 'origin',
            'remotes': [],
        },
        'tool': {
            'concurrency': 0,
            'http_timeout': 30,
            'git_timeout': 300,
        }
    }

    path = os.path.join(directory or os.getcwd(), CONFIG_FILE_NAME)
    try:
        with open(path, 'r') as f:
            logger.info(f"Found {CONFIG_FILE_NAME}, loading...")
            file_config = yaml.safe_load(f)
    except FileNotFoundError:
        logger.debug(f"No {CONFIG_FILE_NAME} found, using defaults")
        return config

    logger.debug(f"Config from {CONFIG_FILE_NAME}: {file_config}")
    if isinstance(file_config, dict):
        for section in ('repo', 'tool'):
            value = file_config.get(section)
            if isinstance(value, dict):
                config[section].update(value)
    return config
