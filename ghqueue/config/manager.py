"""
Configuration management for ghqueue.
"""

import logging
import os
import re
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import tomli

from .. import utils

logger = logging.getLogger(__name__)

PLACEHOLDER_TOKENS = ("", "YOUR_GITHUB_TOKEN_HERE")
ENV_PLACEHOLDER_RE = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_-]*)\}")


def replaceMatchToEnv(match: re.Match[str]) -> str:
    """Replace ${VAR} placeholder with environment value, keep it as is if VAR isn't set."""
    key = match.group(1)
    return os.getenv(key, match.group(0))


def substituteEnvVars(value: Any) -> Any:
    """
    Recursively substitute ${VAR_NAME} placeholders in configuration values.

    Strings get placeholders replaced, dicts and lists are processed
    item by item, other types are returned unchanged.
    """
    if isinstance(value, str):
        return ENV_PLACEHOLDER_RE.sub(replaceMatchToEnv, value)
    elif isinstance(value, dict):
        return {k: substituteEnvVars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [substituteEnvVars(item) for item in value]
    return value


def mergeConfigs(baseConfig: Dict[str, Any], newConfig: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge two configuration dictionaries, newConfig wins, dood!"""
    merged = baseConfig.copy()

    for key, value in newConfig.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = mergeConfigs(merged[key], value)
        else:
            merged[key] = value

    return merged


class ConfigManager:
    """
    Loads and validates ghqueue configuration.

    Main TOML file is loaded first, then every *.toml file found recursively
    in configDirs is merged on top of it (sorted by path). Values may refer to
    environment variables as ${VAR}, variables from dotEnvFile are loaded
    before substitution.
    """

    def __init__(
        self, configPath: str = "config.toml", configDirs: Optional[List[str]] = None, dotEnvFile: str = ".env"
    ):
        self.configPath = configPath
        self.configDirs = configDirs or []
        utils.loadDotEnv(path=dotEnvFile)
        self.config: Dict[str, Any] = substituteEnvVars(self._loadConfig())
        self._validate()

    def _findTomlFilesRecursive(self, directory: str) -> List[Path]:
        """Recursively find all .toml files in a directory, dood!"""
        dirPath = Path(directory)

        if not dirPath.exists():
            logger.warning(f"Config directory {directory} does not exist, skipping, dood!")
            return []

        if not dirPath.is_dir():
            logger.warning(f"Config path {directory} is not a directory, skipping, dood!")
            return []

        tomlFiles = [path for path in dirPath.rglob("*.toml") if path.is_file()]
        for path in tomlFiles:
            logger.debug(f"Found config file: {path}")
        return sorted(tomlFiles)

    def _loadConfig(self) -> Dict[str, Any]:
        """
        Load main config file and merge config directories into it.

        Broken files in config directories are logged and skipped, broken
        main config file is fatal.
        """
        configFile = Path(self.configPath)
        hasConfigFile = configFile.exists()
        if not hasConfigFile and not self.configDirs:
            logger.error(f"Configuration file {self.configPath} not found!")
            sys.exit(1)

        config: Dict[str, Any] = {}
        if hasConfigFile:
            try:
                with open(configFile, "rb") as f:
                    config = tomli.load(f)
            except (OSError, tomli.TOMLDecodeError) as e:
                logger.error(f"Failed to load configuration from {self.configPath}: {e}")
                sys.exit(1)
            logger.info(f"Loaded main config from {self.configPath}")

        for configDir in self.configDirs:
            tomlFiles = self._findTomlFilesRecursive(configDir)
            logger.info(f"Found {len(tomlFiles)} .toml files in {configDir}")

            for tomlFile in tomlFiles:
                try:
                    with open(tomlFile, "rb") as f:
                        dirConfig = tomli.load(f)
                except (OSError, tomli.TOMLDecodeError) as e:
                    logger.error(f"Failed to load config file {tomlFile}: {e}")
                    continue

                config = mergeConfigs(config, dirConfig)
                logger.info(f"Merged config from {tomlFile}")

        return config

    def _validate(self) -> None:
        token = self.getGithubConfig().get("token", "")
        if token in PLACEHOLDER_TOKENS:
            logger.error("GitHub token not found in configuration! Set [github] token in config.toml")
            sys.exit(1)
        # Placeholder left by substitution means variable is not set
        unresolved = ENV_PLACEHOLDER_RE.search(str(token))
        if unresolved is not None:
            logger.error(f"GitHub token refers to unset environment variable {unresolved.group(1)}")
            sys.exit(1)
        logger.info("Configuration loaded and merged successfully, dood!")

    def get(self, key: str, default=None) -> Any:
        """Get configuration value by key."""
        return self.config.get(key, default)

    def getGithubConfig(self) -> Dict[str, Any]:
        """Get [github] table: token, base-url, timeout."""
        return self.get("github", {})

    def getLoggingConfig(self) -> Dict[str, Any]:
        """Get logging-specific configuration."""
        return self.get("logging", {})

    def getToolkitConfig(self) -> Dict[str, Any]:
        """
        Get [toolkit] table.

        Keys: auto-fetch-rate-limits, show-progress-bar, poll-interval,
        rate-limit-timeout
        """
        return self.get("toolkit", {})

    def getQueueConfig(self) -> Dict[str, Any]:
        """
        Get [queue] table with defaults for every request queue.

        Keys: max-concurrent, retry, max-retries, retry-delay
        """
        return self.get("queue", {})

    def getGithubToken(self) -> str:
        return self.getGithubConfig()["token"]
