"""Custom exceptions for critpath."""


class CritpathError(Exception):
    """Base exception for all critpath errors."""

    pass


class ValidationError(CritpathError):
    """Raised when a project file fails validation."""

    pass


class ParseError(CritpathError):
    """Raised when YAML parsing fails."""

    pass


class CalendarError(CritpathError, ValueError):
    """Raised when a working calendar cannot produce working days.

    This is a configuration error, not a data problem: the scheduler refuses to
    run rather than scanning forever for a working day that never comes.
    """

    pass
