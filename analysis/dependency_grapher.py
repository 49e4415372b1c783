"""
Cross-package dependency graph over a directory of packages.
"""
import os
from typing import List
import logging

from models import DependencyGraph
from parsing.errors import FileUnavailableError, PackageAnalysisError
from parsing.package_loader import load_package

logger = logging.getLogger(__name__)


class DependencyGrapher:
    """Finds connections and variables that several packages declare under the same name."""

    def __init__(self, extension: str = ".dtsx"):
        self.extension = extension.lower()

    def find_packages(self, directory: str) -> List[str]:
        """Package files under directory, recursively, in walk order."""
        files = []
        for root, dirs, filenames in os.walk(directory):
            dirs.sort()
            for filename in sorted(filenames):
                if filename.lower().endswith(self.extension):
                    files.append(os.path.join(root, filename))
        return files

    def scan(self, directory: str) -> DependencyGraph:
        """
        Build the dependency graph for every package under directory.

        Files that cannot be read or decoded add nothing to the graph but still
        count towards file_count.

        Raises:
            FileUnavailableError: if directory does not exist
        """
        if not os.path.isdir(directory):
            raise FileUnavailableError(f"Package directory not found: {directory}")

        files = self.find_packages(directory)
        graph = DependencyGraph(directory=directory, file_count=len(files))
        logger.info(f"Scanning {len(files)} package files in {directory}")

        for file_path in files:
            try:
                package = load_package(file_path)
            except PackageAnalysisError as e:
                logger.debug(f"Skipping {file_path}: {e}")
                continue

            package_name = os.path.basename(file_path)
            for conn in package.connections:
                graph.connections.setdefault(conn.name, set()).add(package_name)
            for var in package.variables:
                graph.variables.setdefault(var.name, set()).add(package_name)

        logger.info(
            f"Found {graph.shared_connections} shared connections and "
            f"{graph.shared_variables} shared variables"
        )
        return graph
