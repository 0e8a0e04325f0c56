from __future__ import annotations


class TrackerError(Exception):
    """Base class for everything raised inside the capture/delivery path."""


class ValidationFailure(TrackerError):
    """Payload is missing required contact fields. Dropped, never retried."""


class TransientStoreFailure(TrackerError):
    """Network or store error. Retried with backoff, then escalated."""


class ConfigurationAbsent(TrackerError):
    """No backend configured for a sink. Treated as a permanent skip."""


class PermanentLocalFailure(TrackerError):
    """Even the local durable queue could not be written."""
