"""Configuration loader with YAML parsing and environment variable substitution."""

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Optional

import yaml

from .models import AgentConfig, CounterDefinitions


class ConfigLoader:
    """Load and validate agent configuration."""

    @staticmethod
    def load_from_file(config_path: str, logger: Optional[logging.Logger] = None) -> AgentConfig:
        """
        Load configuration from YAML file with environment variable substitution.

        When the configuration names a counters_file, its counter lists
        replace the ones given in the YAML file.

        Args:
            config_path: Path to YAML configuration file
            logger: Optional logger instance

        Returns:
            AgentConfig: Validated configuration object

        Raises:
            FileNotFoundError: If config file or counters file doesn't exist
            yaml.YAMLError: If YAML parsing fails
            pydantic.ValidationError: If configuration validation fails
        """
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_file, 'r') as f:
            raw_config = yaml.safe_load(f) or {}

        # Substitute environment variables
        raw_config = ConfigLoader._substitute_env_vars(raw_config)

        config = AgentConfig(**raw_config)

        if config.counters_file:
            config.counters = ConfigLoader.load_counter_definitions(config.counters_file, logger)

        return config

    @staticmethod
    def load_counter_definitions(counters_path: str, logger: Optional[logging.Logger] = None) -> CounterDefinitions:
        """
        Load per-entity-type counter name lists from a JSON file.

        Expected keys: Host, VM, ResourcePool, ClusterComputeResource, Datastore.
        Keys that are absent get an empty list, not the built-in defaults.

        Raises:
            FileNotFoundError: If the file doesn't exist
            json.JSONDecodeError: If the file is not valid JSON
            pydantic.ValidationError: If a list holds non-string entries
        """
        logger = logger or logging.getLogger(__name__)
        counters_file = Path(counters_path)
        if not counters_file.exists():
            raise FileNotFoundError(f"Counters file not found: {counters_path}")

        logger.info(f"Reading counter definitions from {counters_path}")
        with open(counters_file, 'r') as f:
            raw = json.load(f)

        definitions = CounterDefinitions(
            Host=raw.get("Host") or [],
            VM=raw.get("VM") or [],
            ResourcePool=raw.get("ResourcePool") or [],
            ClusterComputeResource=raw.get("ClusterComputeResource") or [],
            Datastore=raw.get("Datastore") or [],
        )
        logger.debug(f"Host counters from configuration: {definitions.host}")
        logger.debug(f"VM counters from configuration: {definitions.vm}")
        return definitions

    @staticmethod
    def _substitute_env_vars(obj: Any) -> Any:
        """
        Recursively substitute ${ENV_VAR} placeholders with environment values.

        Args:
            obj: Object to process (str, dict, list, or primitive)

        Returns:
            Object with environment variables substituted
        """
        if isinstance(obj, str):
            pattern = r'\$\{(\w+)\}'
            return re.sub(pattern, lambda m: os.getenv(m.group(1), ''), obj)

        elif isinstance(obj, dict):
            return {k: ConfigLoader._substitute_env_vars(v) for k, v in obj.items()}

        elif isinstance(obj, list):
            return [ConfigLoader._substitute_env_vars(item) for item in obj]

        return obj
