"""Settings and declarative manifest loading."""
from .settings import Settings, find_settings_file
from .manifest import ManifestParser

__all__ = ["Settings", "find_settings_file", "ManifestParser"]
