"""
Error types raised while loading and decoding SSIS packages.

Report operations catch these and embed them in an AnalysisResult instead of
letting them propagate, so a batch of analyses can continue past one bad file.
"""
from models import ErrorKind


class PackageAnalysisError(Exception):
    """Base class for analysis failures that are reported inline."""
    kind: ErrorKind = ErrorKind.MALFORMED_DOCUMENT


class FileUnavailableError(PackageAnalysisError):
    """Path does not exist or cannot be read."""
    kind = ErrorKind.FILE_UNAVAILABLE


class MalformedDocumentError(PackageAnalysisError):
    """Readable bytes that do not decode into a package model."""
    kind = ErrorKind.MALFORMED_DOCUMENT


class UnknownParameterError(PackageAnalysisError):
    """Caller passed a value outside a fixed enumeration."""
    kind = ErrorKind.UNKNOWN_PARAMETER
