"""
Cache utilities for the Bolão
Provides the route caching decorator and ranking invalidation
"""

import functools

from flask import current_app, request

from bolao import cache

RANKING_KEY_PREFIX = "ranking"


def make_cache_key(*args, **kwargs):
    """Generate a cache key from request path, query string and arguments"""
    path = request.path
    query = "_".join(f"{k}_{v}" for k, v in sorted(request.args.items()))
    args_str = "_".join(str(arg) for arg in args)
    kwargs_str = "_".join(f"{k}_{v}" for k, v in sorted(kwargs.items()))
    return f"{path}_{query}_{args_str}_{kwargs_str}".replace("/", "_")


def cached_route(timeout=None, key_prefix="view"):
    """
    Decorator for caching route responses

    Args:
        timeout: Cache timeout in seconds (defaults to RANKING_CACHE_TIMEOUT)
        key_prefix: Prefix for cache key
    """

    def decorator(f):
        @functools.wraps(f)
        def wrapped(*args, **kwargs):
            cache_key = f"{key_prefix}_{make_cache_key(*args, **kwargs)}"

            result = cache.get(cache_key)
            if result is not None:
                current_app.logger.debug(f"Cache hit for key: {cache_key}")
                return result

            result = f(*args, **kwargs)
            cache.set(
                cache_key,
                result,
                timeout=timeout or current_app.config.get("RANKING_CACHE_TIMEOUT", 120),
            )
            current_app.logger.debug(f"Cache set for key: {cache_key}")

            return result

        return wrapped

    return decorator


def invalidate_ranking_cache():
    """
    Drop every cached ranking response after the ledger changed.

    Flask-Caching has no portable delete-by-pattern, so the whole cache is
    cleared. Only ranking responses are stored in it.
    """
    try:
        cache.clear()
        current_app.logger.info("Ranking cache cleared")
    except Exception as e:
        # Stale entries expire after RANKING_CACHE_TIMEOUT
        current_app.logger.error(f"Failed to clear ranking cache: {e}")
