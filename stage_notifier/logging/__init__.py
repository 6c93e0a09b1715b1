"""Structured logging helpers shared by every stage notifier component."""

import logging
from typing import Optional, Union


class ComponentLoggerAdapter(logging.LoggerAdapter):
    """LoggerAdapter that tags records with a component, keeping call extras."""

    def process(self, msg, kwargs):
        # Extras passed on the call override the adapter defaults
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs


def get_logger(
    name: str, component: Optional[str] = None
) -> Union[logging.Logger, ComponentLoggerAdapter]:
    """Get a logger, optionally bound to a component name.

    Args:
        name: Logger name (typically __name__)
        component: Component identifier injected into every record

    Example:
        >>> logger = get_logger(__name__, component="mail")
        >>> logger.error("Sending failed", extra={"event": "mail.send.failure"})
    """
    logger = logging.getLogger(name)

    if component:
        return ComponentLoggerAdapter(logger, {"component": component})

    return logger
