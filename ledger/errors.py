from __future__ import annotations


class LedgerError(Exception):
    """Base class for ledger pipeline errors."""


class LedgerImportError(LedgerError):
    """Raised when an uploaded file cannot be turned into records."""


class UnreadableFileError(LedgerImportError):
    """Raised when the uploaded bytes cannot be decoded as a spreadsheet."""


class EmptyFileError(LedgerImportError):
    """Raised when the spreadsheet decodes but holds no data rows."""


class InvalidMappingError(LedgerError, ValueError):
    pass


class UnknownRowError(LedgerError, KeyError):
    pass


class AnalysisFailure(LedgerError):
    """Raised when an AI analysis or audit call fails or returns unparsable content."""


class SessionStateError(LedgerError):
    """Raised when an operation needs a pipeline step that has not been reached."""
