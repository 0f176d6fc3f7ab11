"""Exception types raised across the filter pipeline."""
from __future__ import annotations


class JobFilterError(Exception):
    """Base class for all service errors."""


class ConfigError(JobFilterError):
    """Missing or invalid configuration."""


class EvaluationError(JobFilterError):
    """The language model returned nothing usable."""


class MailError(JobFilterError):
    """IMAP or SMTP protocol failure."""
