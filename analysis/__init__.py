"""
SSIS Package Analysis Module.

Classification, data flow graph reconstruction, variable resolution and
cross-package dependency analysis over decoded packages.
"""
from .classifier import classify_component, classify_vendor, classify_task_type, classify_container
from .data_flow_graph import DataFlowGraph, DataFlowGraphBuilder, reduce_component_id, path_label
from .variable_resolver import resolve_variable_expressions
from .dependency_grapher import DependencyGrapher

__all__ = [
    "classify_component", "classify_vendor", "classify_task_type", "classify_container",
    "DataFlowGraph", "DataFlowGraphBuilder", "reduce_component_id", "path_label",
    "resolve_variable_expressions", "DependencyGrapher",
]
