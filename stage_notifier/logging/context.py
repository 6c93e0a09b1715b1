"""Scoped logging context.

Fields pushed here (event locator, recipient, ...) are merged into every log
record emitted while the scope is active. Backed by contextvars, so each
thread and task sees its own context.
"""

from contextvars import ContextVar, Token
from typing import Any, Dict, Optional


_log_context: ContextVar[Dict[str, Any]] = ContextVar("stage_notifier_log_context", default={})


def get_log_context() -> Dict[str, Any]:
    """Return a copy of the active logging context."""
    return dict(_log_context.get())


def push_log_context(**fields) -> Token:
    """Merge fields into the active context.

    Returns:
        Token accepted by pop_log_context() to restore the previous context
    """
    return _log_context.set({**_log_context.get(), **fields})


def pop_log_context(token: Token) -> None:
    """Restore the context captured by push_log_context()."""
    _log_context.reset(token)


def clear_log_context() -> None:
    """Drop every context field. Used by tests."""
    _log_context.set({})


class log_context:
    """Context manager pushing fields for the duration of a block.

    Example:
        >>> with log_context(stage="build/12/test/1"):
        ...     logger.info("Rendering notification")
    """

    def __init__(self, **fields):
        self.fields = fields
        self.token: Optional[Token] = None

    def __enter__(self):
        self.token = push_log_context(**self.fields)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.token is not None:
            pop_log_context(self.token)
            self.token = None
        return False
