"""Core infrastructure: configuration, logging, output formatting."""

from stratimport.core.config import get_config, get_config_value
from stratimport.core.logging import get_logger

__all__ = ["get_config", "get_config_value", "get_logger"]
