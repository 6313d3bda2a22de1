"""Configuration management for vetguard.

Handles loading of the YAML engine configuration and of the YAML/JSON
documents (filter suites, fact files) the engine consumes.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from ..errors import ConfigError

DEFAULT_CONFIG_PATH = "/etc/vetguard/config.yaml"


@dataclass
class LoggingConfig:
    """Logging settings."""

    level: str = "INFO"
    log_dir: Optional[str] = None


@dataclass
class EvaluationConfig:
    """Settings for policy evaluation runs."""

    max_workers: int = 1
    fail_on_error: bool = False


@dataclass
class VetGuardConfig:
    """Top-level configuration for vetguard."""

    logging: LoggingConfig = field(default_factory=LoggingConfig)
    evaluation: EvaluationConfig = field(default_factory=EvaluationConfig)


def parse_logging_config(logging_dict: Dict[str, Any]) -> LoggingConfig:
    """Parse the logging section.

    Args:
        logging_dict: Logging configuration dictionary

    Returns:
        LoggingConfig instance
    """
    return LoggingConfig(
        level=str(logging_dict.get("level", "INFO")),
        log_dir=logging_dict.get("log_dir"),
    )


def parse_evaluation_config(evaluation_dict: Dict[str, Any]) -> EvaluationConfig:
    """Parse the evaluation section.

    Args:
        evaluation_dict: Evaluation configuration dictionary

    Returns:
        EvaluationConfig instance

    Raises:
        ConfigError: If max_workers is not a positive integer
    """
    max_workers = evaluation_dict.get("max_workers", 1)
    if not isinstance(max_workers, int) or isinstance(max_workers, bool) or max_workers < 1:
        raise ConfigError(f"evaluation.max_workers must be a positive integer, got {max_workers!r}")

    return EvaluationConfig(
        max_workers=max_workers,
        fail_on_error=bool(evaluation_dict.get("fail_on_error", False)),
    )


def parse_config(config_dict: Dict[str, Any]) -> VetGuardConfig:
    """Parse the full configuration dictionary.

    Args:
        config_dict: Full configuration dictionary

    Returns:
        VetGuardConfig instance
    """
    logging_config = LoggingConfig()
    if "logging" in config_dict:
        logging_config = parse_logging_config(config_dict["logging"] or {})

    evaluation_config = EvaluationConfig()
    if "evaluation" in config_dict:
        evaluation_config = parse_evaluation_config(config_dict["evaluation"] or {})

    return VetGuardConfig(
        logging=logging_config,
        evaluation=evaluation_config,
    )


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """Load configuration from YAML file.

    Args:
        config_path: Path to configuration file

    Returns:
        Configuration dictionary with environment variables expanded

    Raises:
        FileNotFoundError: If config file doesn't exist
        ConfigError: If config file is invalid YAML or not a mapping
    """
    config_file = Path(config_path)

    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    config = _read_yaml(config_file)

    if config is None:
        config = {}

    if not isinstance(config, dict):
        raise ConfigError(
            f"Configuration root must be a mapping, got {type(config).__name__}"
        )

    return _expand_env_vars(config)


def load_typed_config(config_path: str = DEFAULT_CONFIG_PATH) -> VetGuardConfig:
    """Load and parse configuration into typed dataclasses.

    Args:
        config_path: Path to configuration file

    Returns:
        VetGuardConfig instance
    """
    return parse_config(load_config(config_path))


def load_document(path: Union[str, Path]) -> Any:
    """Load a YAML or JSON document without any variable expansion.

    Filter suites hold expressions where `$` is meaningful, so unlike
    load_config nothing is rewritten.

    Args:
        path: Path to a .yaml, .yml or .json file

    Returns:
        Parsed document

    Raises:
        FileNotFoundError: If the file doesn't exist
        ConfigError: If the file cannot be parsed
    """
    document_file = Path(path)
    if not document_file.exists():
        raise FileNotFoundError(f"Document not found: {path}")
    return _read_yaml(document_file)


def _read_yaml(path: Path) -> Any:
    # JSON is a subset of YAML, so safe_load covers both
    try:
        with path.open("r", encoding="utf-8") as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e


def _expand_env_vars(obj: Any) -> Any:
    """Recursively expand environment variables in configuration.

    Args:
        obj: Configuration object (dict, list, str, etc.)

    Returns:
        Configuration with expanded environment variables
    """
    if isinstance(obj, dict):
        return {key: _expand_env_vars(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(item) for item in obj]
    elif isinstance(obj, str):
        return os.path.expandvars(obj)
    else:
        return obj
