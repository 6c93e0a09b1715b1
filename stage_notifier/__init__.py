"""Stage Notifier: e-mail notifications for build-stage status changes."""

__version__ = "1.0.0"
