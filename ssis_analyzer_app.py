#!/usr/bin/env python3
"""
SSIS Package Analyzer - Main Application
Reports on the structure of SSIS packages (.dtsx files).

Every report operation returns an AnalysisResult. Failures such as a missing
file or a malformed document are carried inside the result instead of raised,
so callers can run many reports without guarding each one.
"""

import sys
import argparse
from typing import Any, Callable, Dict, List, Optional
import logging

from config import settings, configure_logging
from models import AnalysisResult, Package, Task, DataFlowComponent, Variable
from parsing import (
    PackageAnalysisError, FileUnavailableError, UnknownParameterError, PackageTextScanner,
    resolve_file_path, read_normalized_text, load_package
)
from analysis import (
    classify_component, classify_vendor, classify_task_type, classify_container,
    DataFlowGraphBuilder, resolve_variable_expressions, DependencyGrapher
)

logger = logging.getLogger(__name__)

# Properties worth surfacing in reports
KEY_PROPERTIES = [
    "SqlCommand", "TableOrViewName", "FileName", "ConnectionString",
    "Expression", "SortKeyPosition", "AggregationType", "Operation",
]
DATA_FLOW_KEY_PROPERTIES = KEY_PROPERTIES[:4]

# destination key -> (class ids, display name); first class id is the canonical one
DESTINATION_TYPES = {
    "ole_db": (["Microsoft.SqlServer.Dts.Pipeline.OLEDBDestinationAdapter", "Microsoft.OLEDBDestination"],
               "OLE DB Destination"),
    "flat_file": (["Microsoft.SqlServer.Dts.Pipeline.FlatFileDestinationAdapter", "Microsoft.FlatFileDestination"],
                  "Flat File Destination"),
    "sql_server": (["Microsoft.SqlServer.Dts.Pipeline.SqlServerDestinationAdapter", "Microsoft.SQLServerDestination"],
                   "SQL Server Destination"),
    "excel": (["Microsoft.SqlServer.Dts.Pipeline.ExcelDestinationAdapter", "Microsoft.ExcelDestination"],
              "Excel Destination"),
    "raw_file": (["Microsoft.SqlServer.Dts.Pipeline.RawFileDestinationAdapter", "Microsoft.RawDestination"],
                 "Raw File Destination"),
}

CONTAINER_FLAGS = {
    "Disabled": "disabled",
    "FailPackageOnFailure": "fail_package_on_failure",
    "FailParentOnFailure": "fail_parent_on_failure",
}

# Configuration type codes grouped by storage kind
XML_CONFIGURATION_TYPES = (1, 5)
SQL_SERVER_CONFIGURATION_TYPES = (8, 9)
ENVIRONMENT_CONFIGURATION_TYPES = (2, 6)


def _key_properties(properties: Dict[str, str], names: List[str] = KEY_PROPERTIES) -> Dict[str, str]:
    """Non-empty key properties, trimmed, in key-property order."""
    selected = {}
    for name in names:
        value = properties.get(name, "").strip()
        if value:
            selected[name] = value
    return selected


class SSISAnalyzerApp:
    """Main application class for SSIS package analysis."""

    def __init__(self, package_directory: Optional[str] = None, max_resolve_depth: int = 10):
        self.package_directory = package_directory
        self.max_resolve_depth = max_resolve_depth
        self.graph_builder = DataFlowGraphBuilder()

    def _run(self, tool_name: str, file_path: str, analyze: Callable[[], Any],
             resolve: bool = True) -> AnalysisResult:
        """Run one analysis, turning analysis errors into an error result."""
        try:
            data = analyze()
        except PackageAnalysisError as e:
            logger.warning(f"{tool_name} failed for {file_path}: {e}")
            return AnalysisResult.create(tool_name, file_path, error=e)

        result = AnalysisResult.create(tool_name, file_path, data=data)
        if resolve and file_path:
            result.metadata["resolved_path"] = resolve_file_path(file_path, self.package_directory)
        return result

    def _load(self, file_path: str) -> Package:
        return load_package(resolve_file_path(file_path, self.package_directory))

    def _resolve(self, value: str, variables: List[Variable]) -> str:
        return resolve_variable_expressions(value, variables, self.max_resolve_depth)

    def _describe_component(self, component: DataFlowComponent) -> Dict[str, Any]:
        return {
            "name": component.name,
            "class_id": component.class_id,
            "category": classify_component(component.class_id).value,
            "description": component.description,
        }

    def analyze_data_flow(self, file_path: str) -> AnalysisResult:
        """Quick pipeline overview from the text-pattern scan; tolerates partial documents."""
        def analyze():
            scanner = PackageTextScanner(read_normalized_text(resolve_file_path(file_path, self.package_directory)))
            if not scanner.has_pipeline():
                return {"has_data_flow": False, "message": "No Data Flow Tasks found in this package"}

            components = []
            for found in scanner.components():
                component = DataFlowComponent(
                    name=found["name"], class_id=found["class_id"], description=found["description"]
                )
                entry = self._describe_component(component)
                entry["key_properties"] = _key_properties(
                    scanner.component_properties(component.name, DATA_FLOW_KEY_PROPERTIES),
                    DATA_FLOW_KEY_PROPERTIES,
                )
                components.append(entry)

            graph = self.graph_builder.build([], scanner.paths())
            return {
                "has_data_flow": True,
                "components": components,
                "paths": [edge.model_dump() for edge in graph.edges],
                "path_summary": graph.describe_edges(),
            }

        return self._run("analyze_data_flow", file_path, analyze)

    def analyze_data_flow_detailed(self, file_path: str) -> AnalysisResult:
        """Per pipeline task: components, columns and the reconstructed edges."""
        def analyze():
            package = self._load(file_path)
            tasks = []
            for task in package.data_flow_tasks():
                graph = self.graph_builder.build(task.data_flow.components, task.data_flow.paths)
                components = []
                for component in task.data_flow.components:
                    entry = self._describe_component(component)
                    entry["properties"] = dict(component.properties)
                    entry["input_columns"] = [col.model_dump() for col in component.input_columns()]
                    entry["output_columns"] = [col.model_dump() for col in component.output_columns()]
                    entry["error_outputs"] = [o.name for o in component.outputs if o.is_error_output]
                    components.append(entry)

                tasks.append({
                    "task": task.name,
                    "components": components,
                    "paths": [edge.model_dump() for edge in graph.edges],
                    "path_summary": graph.describe_edges(),
                    "unmatched_endpoints": graph.unmatched_endpoints(),
                })

            if not tasks:
                return {"data_flow_tasks": [], "message": "No Data Flow Tasks found in this package"}
            return {"data_flow_tasks": tasks}

        return self._run("analyze_data_flow_detailed", file_path, analyze)

    def analyze_destination(self, file_path: str, destination_type: str) -> AnalysisResult:
        """Destination components of one kind, with properties and input columns."""
        def analyze():
            if destination_type not in DESTINATION_TYPES:
                raise UnknownParameterError(
                    f"Unknown destination type: {destination_type}. "
                    f"Supported types: {', '.join(DESTINATION_TYPES)}"
                )
            class_ids, display_name = DESTINATION_TYPES[destination_type]

            package = self._load(file_path)
            found = []
            for task in package.data_flow_tasks():
                for component in task.data_flow.components:
                    if component.class_id not in class_ids:
                        continue
                    found.append({
                        "task": task.name,
                        "name": component.name,
                        "description": component.description,
                        "properties": dict(component.properties),
                        "input_columns": [col.model_dump() for col in component.input_columns()],
                    })

            data = {"destination_type": destination_type, "display_name": display_name, "components": found}
            if not found:
                data["message"] = f"No {display_name} components found in this package"
            return data

        return self._run("analyze_destination", file_path, analyze)

    def analyze_custom_components(self, file_path: str) -> AnalysisResult:
        """Third-party and unrecognized pipeline components, grouped by vendor."""
        def analyze():
            package = self._load(file_path)
            components = []
            vendors: Dict[str, int] = {}
            for task in package.data_flow_tasks():
                for component in task.data_flow.components:
                    vendor = classify_vendor(component.class_id)
                    if vendor is None:
                        continue
                    vendors[vendor] = vendors.get(vendor, 0) + 1
                    entry = self._describe_component(component)
                    entry.update({
                        "task": task.name,
                        "vendor": vendor,
                        "key_properties": _key_properties(component.properties),
                    })
                    components.append(entry)

            data = {"components": components, "vendors": vendors}
            if not components:
                data["message"] = "No custom components found in this package"
            return data

        return self._run("analyze_custom_components", file_path, analyze)

    def analyze_containers(self, file_path: str) -> AnalysisResult:
        """Sequence, For Loop and Foreach Loop containers at any nesting level."""
        def analyze():
            package = self._load(file_path)
            containers = []
            for task in package.iter_tasks():
                container_type = classify_container(task.creation_name)
                if container_type is None:
                    continue

                entry = {
                    "name": task.name,
                    "type": container_type,
                    "description": task.description,
                    "nested_executables": sum(1 for _ in task.iter_tasks()),
                }
                for prop, key in CONTAINER_FLAGS.items():
                    if prop in task.properties:
                        entry[key] = task.properties[prop]
                if task.for_loop is not None:
                    entry["for_loop"] = task.for_loop.model_dump()
                if task.foreach_loop is not None:
                    entry["foreach_loop"] = task.foreach_loop.model_dump()
                containers.append(entry)

            data = {"containers": containers, "total": len(containers)}
            if not containers:
                data["message"] = "No containers found in this package"
            return data

        return self._run("analyze_containers", file_path, analyze)

    def _describe_task(self, task: Task) -> Dict[str, Any]:
        return {
            "name": task.name,
            "type": classify_task_type(task.creation_name),
            "key_properties": _key_properties(task.properties),
        }

    def analyze_event_handlers(self, file_path: str) -> AnalysisResult:
        """Event handlers with their tasks, resolved variables and constraints."""
        def analyze():
            package = self._load(file_path)
            handlers = []
            for handler in package.event_handlers:
                # Constraint expressions see package variables first, then handler variables
                scope = package.variables + handler.variables
                handlers.append({
                    "name": handler.name,
                    "event_type": handler.event_type,
                    "container_id": handler.container_id,
                    "tasks": [self._describe_task(task) for task in handler.executables],
                    "variables": [
                        {
                            "name": var.name,
                            "value": self._resolve(var.value, package.variables),
                            "expression": var.expression,
                        }
                        for var in handler.variables
                    ],
                    "precedence_constraints": [
                        {
                            "from": pc.from_ref,
                            "to": pc.to_ref,
                            "expression": self._resolve(pc.expression, scope) if pc.expression else "",
                        }
                        for pc in handler.precedence_constraints
                    ],
                })

            data = {"event_handlers": handlers, "total": len(handlers)}
            if not handlers:
                data["message"] = "No event handlers found in this package"
            return data

        return self._run("analyze_event_handlers", file_path, analyze)

    def analyze_configurations(self, file_path: str) -> AnalysisResult:
        """Package configurations with type labels and per-kind counts."""
        def analyze():
            package = self._load(file_path)
            configurations = [
                {
                    "name": config.name,
                    "type_code": config.type_code,
                    "type": config.type_label,
                    "description": config.description,
                    "configuration_string": config.configuration_string,
                    "configured_type": config.configured_type,
                    "configured_value": config.configured_value,
                }
                for config in package.configurations
            ]
            codes = [config.type_code for config in package.configurations]
            data = {
                "configurations": configurations,
                "summary": {
                    "total": len(codes),
                    "xml": sum(1 for code in codes if code in XML_CONFIGURATION_TYPES),
                    "sql_server": sum(1 for code in codes if code in SQL_SERVER_CONFIGURATION_TYPES),
                    "environment": sum(1 for code in codes if code in ENVIRONMENT_CONFIGURATION_TYPES),
                },
            }
            if not configurations:
                data["message"] = "No configurations found in this package"
            return data

        return self._run("analyze_configurations", file_path, analyze)

    def analyze_variables(self, file_path: str) -> AnalysisResult:
        """Package variables with values and expressions resolved."""
        def analyze():
            package = self._load(file_path)
            variables = []
            for var in package.variables:
                entry = {
                    "name": var.name,
                    "namespace": var.namespace,
                    "value": var.value,
                    "resolved_value": self._resolve(var.value, package.variables),
                }
                if var.expression:
                    entry["expression"] = var.expression
                    entry["resolved_expression"] = self._resolve(var.expression, package.variables)
                variables.append(entry)
            return {"variables": variables, "total": len(variables)}

        return self._run("analyze_variables", file_path, analyze)

    def analyze_parameters(self, file_path: str) -> AnalysisResult:
        """Package parameters; sensitive values are masked."""
        def analyze():
            package = self._load(file_path)
            parameters = [
                {
                    "name": param.name,
                    "data_type": param.data_type,
                    "value": "********" if param.sensitive and param.value else param.value,
                    "description": param.description,
                    "required": param.required,
                    "sensitive": param.sensitive,
                }
                for param in package.parameters
            ]
            data = {"parameters": parameters, "total": len(parameters)}
            if not parameters:
                data["message"] = "No parameters found in this package"
            return data

        return self._run("analyze_parameters", file_path, analyze)

    def extract_script_code(self, file_path: str) -> AnalysisResult:
        """Embedded script project source of every script task, event handlers included."""
        def analyze():
            package = self._load(file_path)
            located = [("package", task) for task in package.iter_tasks()]
            for handler in package.event_handlers:
                located.extend((f"event handler {handler.name}", task) for task in handler.iter_tasks())

            scripts = [
                {
                    "task": task.name,
                    "type": classify_task_type(task.creation_name),
                    "location": location,
                    "source": task.script_source,
                }
                for location, task in located
                if task.script_source
            ]

            data = {"scripts": scripts, "total": len(scripts)}
            if not scripts:
                data["message"] = "No script tasks with embedded code found in this package"
            return data

        return self._run("extract_script_code", file_path, analyze)

    def analyze_package_dependencies(self, directory: Optional[str] = None) -> AnalysisResult:
        """Connections and variables shared by two or more packages in a directory."""
        directory = directory or self.package_directory or ""

        def analyze():
            if not directory:
                raise FileUnavailableError("No package directory given or configured")
            graph = DependencyGrapher(settings.package_extension).scan(directory)
            return {
                "file_count": graph.file_count,
                "shared_connections": [
                    {"name": name, "packages": sorted(graph.connections[name])}
                    for name in graph.shared_connection_names()
                ],
                "shared_variables": [
                    {"name": name, "packages": sorted(graph.variables[name])}
                    for name in graph.shared_variable_names()
                ],
                "summary": {
                    "shared_connections": graph.shared_connections,
                    "shared_variables": graph.shared_variables,
                },
            }

        return self._run("analyze_package_dependencies", directory, analyze, resolve=False)


def _render(value: Any, indent: int = 0) -> List[str]:
    """Indented text lines for nested report data."""
    pad = "  " * indent
    lines = []
    if isinstance(value, dict):
        for key, item in value.items():
            if isinstance(item, (dict, list)) and item:
                lines.append(f"{pad}{key}:")
                lines.extend(_render(item, indent + 1))
            else:
                lines.append(f"{pad}{key}: {item if item not in (None, {}, []) else '-'}")
    elif isinstance(value, list):
        for item in value:
            if isinstance(item, dict):
                rendered = _render(item, indent + 1)
                lines.append(f"{pad}- {rendered[0].strip()}" if rendered else f"{pad}-")
                lines.extend(rendered[1:])
            else:
                lines.append(f"{pad}- {item}")
    else:
        lines.append(f"{pad}{value}")
    return lines


def format_text(result: AnalysisResult) -> str:
    """Human-readable rendering of a result: header, then the data tree or the error."""
    title = result.tool_name.replace("analyze_", "").replace("_", " ").title()
    lines = ["=" * 60, f"{title}: {result.package or result.file_path}", "=" * 60]
    if result.success:
        lines.extend(_render(result.data))
    else:
        kind = result.error_kind.value if result.error_kind else "Error"
        lines.append(f"[ERROR] {kind}: {result.error}")
    return "\n".join(lines)


REPORTS = {
    "data-flow": "analyze_data_flow",
    "data-flow-detailed": "analyze_data_flow_detailed",
    "destination": "analyze_destination",
    "custom-components": "analyze_custom_components",
    "containers": "analyze_containers",
    "event-handlers": "analyze_event_handlers",
    "configurations": "analyze_configurations",
    "variables": "analyze_variables",
    "parameters": "analyze_parameters",
    "script-code": "extract_script_code",
    "dependencies": "analyze_package_dependencies",
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the application."""
    parser = argparse.ArgumentParser(
        description='Analyze the structure of SSIS packages',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Examples:
  # Overview of a package's data flow
  ssis-analyzer data-flow input/package.dtsx

  # OLE DB destinations, as JSON
  ssis-analyzer destination input/package.dtsx --destination-type ole_db --format json

  # Connections and variables shared across a folder of packages
  ssis-analyzer dependencies input/
        '''
    )

    parser.add_argument(
        'report',
        choices=list(REPORTS),
        help='Report to run'
    )

    parser.add_argument(
        'path',
        nargs='?',
        default=None,
        help='Path to a .dtsx file (or a folder, for the dependencies report)'
    )

    parser.add_argument(
        '--destination-type',
        default='ole_db',
        help=f"Destination kind for the destination report: {', '.join(DESTINATION_TYPES)} (default: ole_db)"
    )

    parser.add_argument(
        '--format',
        choices=['text', 'json'],
        default=settings.output_format,
        help='Output format (default: text)'
    )

    parser.add_argument(
        '--package-dir',
        default=settings.package_directory,
        help='Base directory for relative package paths'
    )

    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable verbose logging'
    )

    args = parser.parse_args(argv)

    configure_logging("DEBUG" if args.verbose else settings.log_level, settings.log_file)

    app = SSISAnalyzerApp(package_directory=args.package_dir, max_resolve_depth=settings.max_resolve_depth)

    if args.report == "dependencies":
        result = app.analyze_package_dependencies(args.path)
    elif not args.path:
        parser.error(f"the {args.report} report requires a package path")
    elif args.report == "destination":
        result = app.analyze_destination(args.path, args.destination_type)
    else:
        result = getattr(app, REPORTS[args.report])(args.path)

    if args.format == "json":
        print(result.model_dump_json(indent=2))
    else:
        print(format_text(result))

    return 0 if result.success else 1


if __name__ == '__main__':
    sys.exit(main())
