"""
SSIS Package Parsing Module.

Turns SSIS packages (.dtsx files) into something analyzable, using one of two
profiles over the same normalized document:

- PackageDecoder: strict structural decode into the typed Package model
- PackageTextScanner: liberal regex scan of components, properties and paths

Usage:
    from parsing import load_package

    package = load_package('path/to/package.dtsx')
    for task in package.data_flow_tasks():
        print(task.name, len(task.data_flow.components))
"""

from .errors import (
    PackageAnalysisError, FileUnavailableError, MalformedDocumentError, UnknownParameterError
)
from .normalizer import normalize_document, normalize_text
from .package_decoder import PackageDecoder
from .text_scanner import PackageTextScanner
from .package_loader import resolve_file_path, read_package_bytes, read_normalized_text, load_package

__all__ = [
    "PackageAnalysisError", "FileUnavailableError", "MalformedDocumentError", "UnknownParameterError",
    "normalize_document", "normalize_text", "PackageDecoder", "PackageTextScanner",
    "resolve_file_path", "read_package_bytes", "read_normalized_text", "load_package",
]

# Version info
__version__ = "1.0.0"
__author__ = "SSIS Analyzer Team"
