"""Runtime configuration: RuntimeConfig and initialization."""

from __future__ import annotations

import os
from dataclasses import dataclass

from klaw_strand._logging import configure_logging, get_logger

__all__ = [
    'RuntimeConfig',
    'active_config',
    'get_config',
    'init',
]

MAX_STEP_LIMIT = 10_000_000


@dataclass(frozen=True)
class RuntimeConfig:
    """Configuration for the strand runtime.

    Attributes:
        log_level: Logging level (e.g., "DEBUG", "INFO"). None = leave logging alone.
        json_logs: Render logs as JSON (True) or console text (False).
        trace_requests: Log every request a runtime handles at debug level.
        step_limit: Max timer callbacks a VirtualHost fires per run_until_idle.
    """

    log_level: str | None = None
    json_logs: bool = True
    trace_requests: bool = False
    step_limit: int = 1_000_000


# Global runtime configuration (set by init())
_config: RuntimeConfig | None = None

_TRUTHY = frozenset({'1', 'true', 'yes', 'on'})


def _detect_log_level() -> str | None:
    """Read KLAW_STRAND_LOG_LEVEL, ignoring empty values."""
    level = os.environ.get('KLAW_STRAND_LOG_LEVEL', '').strip()
    return level.upper() or None


def _detect_trace() -> bool:
    return os.environ.get('KLAW_STRAND_TRACE', '').strip().lower() in _TRUTHY


def _detect_step_limit() -> int | None:
    raw = os.environ.get('KLAW_STRAND_STEP_LIMIT', '').strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        get_logger(__name__).warning('invalid_step_limit', value=raw)
        return None


def _clamp_step_limit(limit: int) -> int:
    return max(1, min(MAX_STEP_LIMIT, limit))


def init(
    log_level: str | None = None,
    *,
    json_logs: bool = True,
    trace_requests: bool | None = None,
    step_limit: int | None = None,
) -> RuntimeConfig:
    """Initialize the strand runtime configuration.

    Arguments win over environment variables (`KLAW_STRAND_LOG_LEVEL`,
    `KLAW_STRAND_TRACE`, `KLAW_STRAND_STEP_LIMIT`), which win over defaults.

    Args:
        log_level: Logging level ("DEBUG", "INFO", etc.). None = silent.
        json_logs: JSON (True) or console (False) log rendering.
        trace_requests: Log each request handled by a Runtime.
        step_limit: Max callbacks per VirtualHost.run_until_idle.

    Returns:
        The RuntimeConfig that was set.

    Example:
        ```python
        from klaw_strand import init

        init(log_level='DEBUG', trace_requests=True)
        ```
    """
    global _config  # noqa: PLW0603

    resolved_level = log_level if log_level is not None else _detect_log_level()
    resolved_trace = trace_requests if trace_requests is not None else _detect_trace()
    if step_limit is None:
        step_limit = _detect_step_limit()
    resolved_limit = _clamp_step_limit(step_limit) if step_limit is not None else RuntimeConfig.step_limit

    _config = RuntimeConfig(
        log_level=resolved_level,
        json_logs=json_logs,
        trace_requests=resolved_trace,
        step_limit=resolved_limit,
    )

    if resolved_level is not None:
        configure_logging(resolved_level, json_output=json_logs)

    return _config


def get_config() -> RuntimeConfig:
    """Get the current runtime configuration.

    Raises:
        RuntimeError: If init() has not been called.
    """
    if _config is None:
        msg = 'Runtime not initialized. Call klaw_strand.init() first.'
        raise RuntimeError(msg)
    return _config


def active_config() -> RuntimeConfig:
    """Return the configuration set by init(), or the defaults if none was."""
    return _config if _config is not None else RuntimeConfig()
