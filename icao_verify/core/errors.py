# icao_verify/core/errors.py


class VerificationError(Exception):
    """Base class for errors raised while verifying a photo."""


class InputError(VerificationError):
    """Request is missing or has a malformed image reference (HTTP 400)."""


class FetchError(VerificationError):
    """The image could not be fetched (HTTP 500, caller may resubmit)."""


class DetectionUnavailable(VerificationError):
    """Face detection backend failed; recovered locally, never surfaced."""


class ConfigError(VerificationError, RuntimeError):
    """Process configuration is incomplete. Fatal at startup."""
