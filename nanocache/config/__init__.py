from .loader import get_cache_settings, reload_cache_settings
from .models import CacheSettings

__all__ = ["CacheSettings", "get_cache_settings", "reload_cache_settings"]
