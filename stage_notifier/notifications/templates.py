"""Subject and body rendering for stage notifications using Jinja2.

Templates are plain text: autoescaping is off and undefined variables are
errors, so a broken template fails loudly instead of sending half a message.
"""

import logging
from typing import Dict, Mapping, Optional

from jinja2 import DictLoader, Environment, StrictUndefined, TemplateError

from stage_notifier.domain.models import StageStatusEvent
from stage_notifier.mail.models import TemplateRenderError

logger = logging.getLogger(__name__)

SUBJECT_TEMPLATE = "subject.txt"
BODY_TEMPLATE = "body.txt"

DEFAULT_TEMPLATES = {
    SUBJECT_TEMPLATE: "Stage [{{ locator }}] {{ state_verb }}",
    BODY_TEMPLATE: (
        "See details: {{ details_url }}\n"
        "{% if triggered_by %}\nTriggered by: {{ triggered_by }}\n{% endif %}"
    ),
}

STATE_VERBS = {
    "passed": "passed",
    "failed": "failed",
    "cancelled": "is cancelled",
    "building": "is building",
}


def state_verb(state: str) -> str:
    """Phrase a stage state for a subject line, e.g. 'Cancelled' -> 'is cancelled'."""
    normalized = state.strip().lower()
    return STATE_VERBS.get(normalized, normalized)


def build_template_context(event: StageStatusEvent, server_base_url: str) -> Dict:
    return {
        "pipeline_name": event.pipeline_name,
        "pipeline_counter": event.pipeline_counter,
        "stage_name": event.stage_name,
        "stage_counter": event.stage_counter,
        "state": event.state,
        "state_verb": state_verb(event.state),
        "result": event.result,
        "triggered_by": event.triggered_by,
        "locator": event.locator,
        "details_url": event.details_url(server_base_url),
    }


class TemplateRenderer:
    """Renders the subject line and plain-text body of a stage notification."""

    def __init__(self, templates: Optional[Mapping[str, str]] = None):
        """Initialize the Jinja2 environment.

        Args:
            templates: Replacement template sources keyed by template name
                (subject.txt, body.txt); missing names use the defaults
        """
        sources = {**DEFAULT_TEMPLATES, **(templates or {})}
        self.env = Environment(
            loader=DictLoader(sources),
            autoescape=False,
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )

    def render(self, event: StageStatusEvent, server_base_url: str) -> Dict[str, str]:
        """Render subject and body for an event.

        Returns:
            {"subject": single-line subject, "body": plain text body}

        Raises:
            TemplateRenderError: If a template is missing or fails to render
        """
        context = build_template_context(event, server_base_url)
        try:
            subject = self.env.get_template(SUBJECT_TEMPLATE).render(context)
            body = self.env.get_template(BODY_TEMPLATE).render(context)
        except TemplateError as e:
            error_msg = f"Template rendering failed: {e}"
            logger.error(error_msg, exc_info=True)
            raise TemplateRenderError(error_msg) from e

        return {
            "subject": " ".join(subject.split()),
            "body": body,
        }
