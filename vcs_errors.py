"""
vcs_errors.py - Exception types shared by the version retrieval modules.
"""


class VersionsError(Exception):
    """Base class for errors that abort a get-versions invocation."""

    exit_code = 1


class UsageError(VersionsError):
    """
    Raised for bad user input: a malformed revision token, an inverted or
    mismatched range, or an incompatible option combination.
    """

    exit_code = 2


class LookupFailure(VersionsError):
    """Raised when a backend query fails or its output lacks the expected marker."""
