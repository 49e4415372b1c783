"""
Locating, reading and decoding package files.
"""
import os
from typing import Optional
import logging

from models import Package
from .errors import FileUnavailableError
from .normalizer import normalize_document
from .package_decoder import PackageDecoder

logger = logging.getLogger(__name__)


def resolve_file_path(file_path: str, package_directory: Optional[str] = None) -> str:
    """Join a relative path to the package directory; absolute paths pass through."""
    if not package_directory or os.path.isabs(file_path):
        return file_path
    return os.path.join(package_directory, file_path)


def read_package_bytes(file_path: str) -> bytes:
    """Read a whole package file, raising FileUnavailableError on any I/O failure."""
    try:
        with open(file_path, 'rb') as f:
            return f.read()
    except OSError as e:
        raise FileUnavailableError(f"Cannot read package file {file_path}: {e}") from e


def read_normalized_text(file_path: str) -> str:
    """Normalized package text for the generic text-pattern profile."""
    data = normalize_document(read_package_bytes(file_path))
    return data.decode('utf-8', errors='replace')


def load_package(file_path: str) -> Package:
    """Read, normalize and strictly decode a package file."""
    logger.debug(f"Loading package: {file_path}")
    data = normalize_document(read_package_bytes(file_path))
    return PackageDecoder().decode(data)
