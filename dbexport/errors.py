"""
Exception hierarchy for the export tool.

Configuration and literal parsing problems are raised before any database
work starts; database failures wrap the underlying driver exception.
"""


class ExportError(Exception):
    """Base class for every error raised by dbexport"""


class ConfigurationError(ExportError):
    """The option set is malformed or its options contradict each other"""


class ParseError(ExportError):
    """A date/time or period literal could not be parsed"""

    def __init__(self, literal, message=None):
        self.literal = literal
        super().__init__(message or f"Could not parse '{literal}'")


class DatabaseError(ExportError):
    """A database operation failed; the driver exception is chained as __cause__"""


class IllegalStateError(ExportError):
    """The caller broke a usage contract, e.g. split requested without a connection"""
