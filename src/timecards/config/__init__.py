"""Configuration loading."""

from .settings import ConfigError, Settings, generate_example_env, load_env_file

__all__ = ["ConfigError", "Settings", "generate_example_env", "load_env_file"]
