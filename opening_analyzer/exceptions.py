# opening_analyzer/exceptions.py
"""
Defines custom exceptions for the Opening Analyzer.

Centralizing exceptions in this module prevents circular dependencies that can
arise when different components need to catch errors defined in others. A clear
exception hierarchy, with a common `OpeningAnalyzerError` base, allows for flexible
and specific error handling throughout the application.

Note that most "failures" of a classification (no moves, a truncated game, no
catalogue match) are ordinary results, not exceptions. The classes below cover
the cases that genuinely need to interrupt a caller.
"""


class OpeningAnalyzerError(Exception):
    """Base class for all application-specific, catchable errors."""
    pass


class InvalidRequestError(OpeningAnalyzerError, ValueError):
    """
    Raised when a caller violates the classification call contract.

    This covers a missing or non-string move-list argument and option payloads
    that cannot be validated. It is reported synchronously to the caller.
    """
    pass


class CatalogueError(OpeningAnalyzerError):
    """Base class for errors related to the opening catalogue."""
    pass


class CatalogueLoadError(CatalogueError):
    """
    Raised when the catalogue source cannot be read at all.

    This typically wraps lower-level exceptions like `FileNotFoundError` or
    `OSError`. Startup code converts it into an empty catalogue.
    """
    pass


class CatalogueFormatError(CatalogueError):
    """Raised when the catalogue document is readable but structurally malformed."""
    pass


class PgnError(OpeningAnalyzerError):
    """Base class for errors related to PGN (Portable Game Notation) handling."""
    pass


class PgnServiceError(PgnError):
    """
    Raised for file I/O errors when reading games from PGN files.

    This typically wraps lower-level exceptions like `FileNotFoundError` or `IOError`.
    """
    pass


class ReportGenerationError(OpeningAnalyzerError):
    """Raised for errors encountered while writing progression reports."""
    pass
