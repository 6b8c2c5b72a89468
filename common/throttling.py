"""
Per-IP request throttles.

Counters live in the Django cache and are advisory: they are not shared
reliably across processes unless the cache backend is (Redis in production).
"""
from rest_framework.throttling import ScopedRateThrottle, SimpleRateThrottle


class ClientIPRateThrottle(SimpleRateThrottle):
    """General API limit applied to every request, keyed by client IP."""
    scope = "api"

    def get_cache_key(self, request, view):
        return self.cache_format % {"scope": self.scope, "ident": self.get_ident(request)}


class ClientIPScopedRateThrottle(ScopedRateThrottle):
    """
    Stricter limit for views/actions declaring `throttle_scope`.
    Unlike DRF's ScopedRateThrottle the key is always the client IP, even for
    authenticated users.
    """

    def get_cache_key(self, request, view):
        return self.cache_format % {"scope": self.scope, "ident": self.get_ident(request)}
