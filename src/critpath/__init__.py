"""critpath - critical path scheduling over working calendars."""

__version__ = "0.1.0"
