"""
Request quotas per client identity.

Sandi Metz Principles:
- Single Responsibility: Count requests per scope and identity
- Small methods: Each method < 10 lines
- Dependency Injection: Configuration and clock injected
"""

import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Mapping

from fastapi import Request

from streamgate.exceptions import ConfigurationError
from streamgate.models.quota import QuotaConfig, QuotaDecision
from streamgate.utils.logger import get_logger

logger = get_logger(__name__)

GLOBAL_SCOPE = "global"
USER_AGENT_FINGERPRINT_LENGTH = 64


@dataclass
class QuotaWindow:
    """Fixed counting window for one scope."""

    window_start: float
    window_seconds: int
    max_requests: int
    counts: Dict[str, int] = field(default_factory=dict)

    def is_expired(self, now: float) -> bool:
        """Check if the window has run its course."""
        return now - self.window_start >= self.window_seconds

    def restart(self, now: float) -> None:
        """Start a fresh window with empty counts."""
        self.window_start = now
        self.counts = {}

    def seconds_until_reset(self, now: float) -> int:
        """Whole seconds until the window resets (at least 1)."""
        remaining = self.window_start + self.window_seconds - now
        return max(1, int(remaining + 0.999))


class QuotaLimiter:
    """
    Fixed-window request limiter shared by all requests.

    One window per scope; each is checked independently and a request
    must pass every window that applies to it.
    """

    def __init__(
        self,
        configs: Mapping[str, QuotaConfig],
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize limiter.

        Args:
            configs: Quota configuration per scope
            clock: Monotonic time source in seconds
        """
        self._configs = dict(configs)
        self._clock = clock
        self._lock = threading.Lock()
        now = clock()
        self._windows = {
            scope: QuotaWindow(now, cfg.window_seconds, cfg.limit)
            for scope, cfg in self._configs.items()
        }

    def check(self, identity: str, scope: str) -> QuotaDecision:
        """
        Count one request and decide whether it is admitted.

        Args:
            identity: Client identity key
            scope: Quota scope name

        Returns:
            Admission decision

        Raises:
            ConfigurationError: If scope is unknown
        """
        config = self._get_config(scope)
        if not config.enabled:
            return QuotaDecision(
                allowed=True, scope=scope, limit=config.limit, remaining=config.limit
            )

        with self._lock:
            now = self._clock()
            window = self._current_window(scope, now)
            count = window.counts.get(identity, 0) + 1
            window.counts[identity] = count
            allowed = count <= window.max_requests
            retry_after = 0 if allowed else window.seconds_until_reset(now)

        if not allowed:
            logger.warning(
                "Quota exceeded", scope=scope, count=count, limit=config.limit
            )
        return QuotaDecision(
            allowed=allowed,
            scope=scope,
            limit=config.limit,
            remaining=max(0, config.limit - count),
            retry_after=retry_after,
        )

    def admit(self, identity: str, scope: str) -> bool:
        """
        Count one request and report whether it is admitted.

        Args:
            identity: Client identity key
            scope: Quota scope name

        Returns:
            True if the request is within the scope's quota
        """
        return self.check(identity, scope).allowed

    def remaining(self, identity: str, scope: str) -> int:
        """
        Get remaining requests for identity without counting one.

        Args:
            identity: Client identity key
            scope: Quota scope name

        Returns:
            Requests left in the current window
        """
        config = self._get_config(scope)
        with self._lock:
            window = self._current_window(scope, self._clock())
            used = window.counts.get(identity, 0)
        return max(0, config.limit - used)

    def scopes(self) -> list:
        """Get configured scope names."""
        return list(self._configs.keys())

    def reset(self) -> None:
        """Clear all windows."""
        with self._lock:
            now = self._clock()
            for window in self._windows.values():
                window.restart(now)

    def _current_window(self, scope: str, now: float) -> QuotaWindow:
        window = self._windows[scope]
        if window.is_expired(now):
            window.restart(now)
        return window

    def _get_config(self, scope: str) -> QuotaConfig:
        config = self._configs.get(scope)
        if config is None:
            raise ConfigurationError(f"Unknown quota scope: {scope}")
        return config


def client_identity(request: Request) -> str:
    """
    Derive the quota key for a request.

    Combines network origin, a coarse user agent fingerprint and the
    optional X-Client-Tag header. Best effort only: none of these
    signals is authenticated.

    Args:
        request: Incoming request

    Returns:
        Identity key
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        origin = forwarded.split(",")[0].strip()
    else:
        origin = request.client.host if request.client else "unknown"
    user_agent = request.headers.get("User-Agent", "")[:USER_AGENT_FINGERPRINT_LENGTH]
    tag = request.headers.get("X-Client-Tag", "")
    return f"{origin}|{user_agent}|{tag}"


def build_quota_limiter(
    limits: Mapping[str, int],
    window_seconds: int,
    enabled: bool = True,
    clock: Callable[[], float] = time.monotonic,
) -> QuotaLimiter:
    """
    Create limiter with one window per scope.

    Args:
        limits: Request limit per scope
        window_seconds: Window length shared by all scopes
        enabled: Whether quotas are enforced
        clock: Monotonic time source

    Returns:
        Configured limiter
    """
    configs = {
        scope: QuotaConfig(limit=limit, window_seconds=window_seconds, enabled=enabled)
        for scope, limit in limits.items()
    }
    return QuotaLimiter(configs, clock=clock)
