"""Test helper utilities for stage notifier tests."""

from .fake_smtp import FakeSMTP, RecordingSMTPFactory

__all__ = ["FakeSMTP", "RecordingSMTPFactory"]
