from .ttl_cache import TTLCache, CacheSweeper, CacheStats

__all__ = ['TTLCache', 'CacheSweeper', 'CacheStats']
