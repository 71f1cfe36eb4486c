"""Cache configuration models and loaders."""

from .models import CacheOptions, EnvSettings, build_options, load_options_file

__all__ = ["CacheOptions", "EnvSettings", "build_options", "load_options_file"]
