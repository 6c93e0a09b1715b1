"""Domain models for stage notifications."""

from .models import StageStatusEvent

__all__ = ["StageStatusEvent"]
