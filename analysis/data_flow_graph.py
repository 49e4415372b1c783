"""
Reconstruction of data flow edges from pipeline path elements.
"""
import re
from typing import Dict, List

from models import DataFlowComponent, DataFlowEdge, PathReference

PATH_LABEL = re.compile(r'\.Paths\[([^\]]+)\]')


def reduce_component_id(raw: str) -> str:
    """Component name part of a qualified endpoint id: text after the final backslash."""
    return raw.rsplit('\\', 1)[-1]


def path_label(ref_id: str) -> str:
    """Bracketed label of a "...Paths[label]" ref id, or an empty string."""
    match = PATH_LABEL.search(ref_id)
    return match.group(1) if match else ""


class DataFlowGraph:
    """Components of one pipeline and the labelled edges between them."""

    def __init__(self, nodes: Dict[str, DataFlowComponent], edges: List[DataFlowEdge]):
        self.nodes = nodes
        self.edges = edges

    def successors(self, name: str) -> List[str]:
        return [edge.target for edge in self.edges if edge.source == name]

    def predecessors(self, name: str) -> List[str]:
        return [edge.source for edge in self.edges if edge.target == name]

    def unmatched_endpoints(self) -> List[str]:
        """Edge endpoints naming no known component, in first-seen order."""
        unmatched = []
        for edge in self.edges:
            for endpoint in (edge.source, edge.target):
                if endpoint not in self.nodes and endpoint not in unmatched:
                    unmatched.append(endpoint)
        return unmatched

    def describe_edges(self) -> List[str]:
        if not self.edges:
            return ["No data paths"]
        return [f"{edge.source} -> {edge.target}" + (f" ({edge.label})" if edge.label else "")
                for edge in self.edges]


class DataFlowGraphBuilder:
    """Builds a DataFlowGraph from components and raw path triples."""

    def build(self, components: List[DataFlowComponent], paths: List[PathReference]) -> DataFlowGraph:
        nodes: Dict[str, DataFlowComponent] = {}
        for component in components:
            nodes.setdefault(component.name, component)

        # Edges whose endpoints match no component are kept as-is
        edges = [
            DataFlowEdge(
                label=path_label(path.ref_id),
                source=reduce_component_id(path.start_id),
                target=reduce_component_id(path.end_id),
            )
            for path in paths
        ]
        return DataFlowGraph(nodes, edges)
