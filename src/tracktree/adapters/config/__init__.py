"""
Configuration adapters - Settings providers for files, environment and memory.
"""

from .environment import EnvironmentSettingsProvider, parse_env_file
from .file_provider import FileSettingsProvider, find_config_file, load_config_file
from .layered import DictSettingsProvider, LayeredSettingsProvider


__all__ = [
    "DictSettingsProvider",
    "EnvironmentSettingsProvider",
    "FileSettingsProvider",
    "LayeredSettingsProvider",
    "find_config_file",
    "load_config_file",
    "parse_env_file",
]
