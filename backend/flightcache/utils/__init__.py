"""Configuration helpers for the flight cache."""

from .config import AppConfig, load_config, configure_logging

__all__ = ["AppConfig", "load_config", "configure_logging"]
