"""Stage status notifications.

- NotificationService: renders an event and mails every recipient
- TemplateRenderer: Jinja2 subject/body rendering
"""

from .service import NotificationService
from .templates import TemplateRenderer, build_template_context, state_verb

__all__ = [
    "NotificationService",
    "TemplateRenderer",
    "build_template_context",
    "state_verb",
]
