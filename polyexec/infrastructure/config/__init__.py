from .config import Settings, get_settings
from .languages import DEFAULT_LANGUAGE_PROFILES, build_language_profiles

__all__ = ["Settings", "get_settings", "DEFAULT_LANGUAGE_PROFILES", "build_language_profiles"]
