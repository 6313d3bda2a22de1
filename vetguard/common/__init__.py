"""Common utilities for vetguard."""

from .config import load_config, load_document, load_typed_config
from .logger import get_logger, setup_logger
from .settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_logger",
    "get_settings",
    "load_config",
    "load_document",
    "load_typed_config",
    "setup_logger",
]
