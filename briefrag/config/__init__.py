"""Configuration module: exports Settings, ProviderConfig and load_config."""

from briefrag.config.loader import load_config
from briefrag.config.settings import ProviderConfig, Settings

__all__ = ["ProviderConfig", "Settings", "load_config"]
