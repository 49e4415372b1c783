"""
Data models for SSIS package analysis.
"""
import os
from datetime import datetime
from typing import List, Dict, Any, Optional, Set, Iterator
from pydantic import BaseModel, Field
from enum import Enum


class ComponentCategory(str, Enum):
    """Semantic role of a data flow component."""
    SOURCE = "Source"
    DESTINATION = "Destination"
    TRANSFORMATION = "Transformation"
    UNKNOWN = "Unknown"


class ErrorKind(str, Enum):
    """Failure conditions surfaced in analysis results."""
    FILE_UNAVAILABLE = "FileUnavailable"
    MALFORMED_DOCUMENT = "MalformedDocument"
    UNKNOWN_PARAMETER = "UnknownParameter"


# Configuration type codes used by package configurations (SSIS 2005-2008)
CONFIGURATION_TYPES = {
    0: "Parent Package Variable",
    1: "XML Configuration File",
    2: "Environment Variable",
    3: "Registry Entry",
    4: "Parent Package Variable (indirect)",
    5: "XML Configuration File (indirect)",
    6: "Environment Variable (indirect)",
    7: "Registry Entry (indirect)",
    8: "SQL Server",
    9: "SQL Server (indirect)",
}


class Column(BaseModel):
    """Input or output column of a data flow component."""
    name: str = ""
    data_type: str = ""
    length: int = 0  # 0 = unspecified


class ComponentInput(BaseModel):
    """Component input with its columns."""
    name: str = ""
    columns: List[Column] = Field(default_factory=list)


class ComponentOutput(BaseModel):
    """Component output with its columns."""
    name: str = ""
    is_error_output: bool = False
    columns: List[Column] = Field(default_factory=list)


class DataFlowComponent(BaseModel):
    """A component inside a pipeline task."""
    name: str
    ref_id: str = ""
    description: str = ""
    class_id: str = ""
    properties: Dict[str, str] = Field(default_factory=dict)
    inputs: List[ComponentInput] = Field(default_factory=list)
    outputs: List[ComponentOutput] = Field(default_factory=list)

    def normal_outputs(self) -> List[ComponentOutput]:
        """Outputs that are not error outputs."""
        return [output for output in self.outputs if not output.is_error_output]

    def input_columns(self) -> List[Column]:
        return [col for inp in self.inputs for col in inp.columns]

    def output_columns(self, include_errors: bool = False) -> List[Column]:
        outputs = self.outputs if include_errors else self.normal_outputs()
        return [col for output in outputs for col in output.columns]


class PathReference(BaseModel):
    """Raw (refId, startId, endId) triple of a data flow path element."""
    ref_id: str = ""
    start_id: str = ""
    end_id: str = ""


class DataFlowEdge(BaseModel):
    """Directed edge between two data flow components."""
    label: str = ""
    source: str = ""
    target: str = ""


class DataFlow(BaseModel):
    """Pipeline payload of a data flow task."""
    components: List[DataFlowComponent] = Field(default_factory=list)
    paths: List[PathReference] = Field(default_factory=list)


class Variable(BaseModel):
    """Package, container or event handler variable."""
    name: str
    value: str = ""
    expression: Optional[str] = None
    namespace: str = "User"


class Parameter(BaseModel):
    """Package parameter (SSIS 2012+)."""
    name: str
    data_type: str = ""
    value: str = ""
    description: str = ""
    required: bool = False
    sensitive: bool = False


class Connection(BaseModel):
    """Connection manager declared by a package."""
    name: str
    creation_name: str = ""
    connection_string: str = ""


class Configuration(BaseModel):
    """Package configuration entry."""
    name: str = ""
    type_code: int = 0
    description: str = ""
    configuration_string: str = ""
    configured_type: str = ""
    configured_value: str = ""

    @property
    def type_label(self) -> str:
        return CONFIGURATION_TYPES.get(self.type_code, "Unknown")


class PrecedenceConstraint(BaseModel):
    """Execution order constraint between executables."""
    name: str = ""
    from_ref: str = ""
    to_ref: str = ""
    expression: str = ""
    eval_op: str = ""


class ForLoop(BaseModel):
    """For Loop container expressions."""
    init_expression: str = ""
    eval_expression: str = ""
    assign_expression: str = ""


class ForeachLoop(BaseModel):
    """Foreach Loop container enumerator settings."""
    enumerator: str = ""
    folder: str = ""
    file_spec: str = ""
    recurse: bool = False
    items: List[str] = Field(default_factory=list)
    variable_mappings: List[str] = Field(default_factory=list)


class Task(BaseModel):
    """Control flow executable: task, container or pipeline."""
    name: str = ""
    description: str = ""
    ref_id: str = ""
    creation_name: str = ""
    properties: Dict[str, str] = Field(default_factory=dict)
    data_flow: Optional[DataFlow] = None
    script_source: Optional[str] = None
    executables: List["Task"] = Field(default_factory=list)
    variables: List[Variable] = Field(default_factory=list)
    precedence_constraints: List[PrecedenceConstraint] = Field(default_factory=list)
    for_loop: Optional[ForLoop] = None
    foreach_loop: Optional[ForeachLoop] = None

    @property
    def is_data_flow(self) -> bool:
        return "Pipeline" in self.creation_name

    def iter_tasks(self) -> Iterator["Task"]:
        """Depth-first walk over nested executables, excluding self."""
        for child in self.executables:
            yield child
            yield from child.iter_tasks()


class EventHandler(BaseModel):
    """Event handler attached to a package or container."""
    name: str = ""
    event_type: str = ""
    container_id: str = ""
    executables: List[Task] = Field(default_factory=list)
    variables: List[Variable] = Field(default_factory=list)
    precedence_constraints: List[PrecedenceConstraint] = Field(default_factory=list)

    def iter_tasks(self) -> Iterator[Task]:
        for task in self.executables:
            yield task
            yield from task.iter_tasks()


class Package(BaseModel):
    """Represents a decoded SSIS package."""
    name: str = ""
    properties: Dict[str, str] = Field(default_factory=dict)
    executables: List[Task] = Field(default_factory=list)
    connections: List[Connection] = Field(default_factory=list)
    variables: List[Variable] = Field(default_factory=list)
    parameters: List[Parameter] = Field(default_factory=list)
    configurations: List[Configuration] = Field(default_factory=list)
    event_handlers: List[EventHandler] = Field(default_factory=list)
    precedence_constraints: List[PrecedenceConstraint] = Field(default_factory=list)

    def connection(self, name: str) -> Optional[Connection]:
        for conn in self.connections:
            if conn.name == name:
                return conn
        return None

    def iter_tasks(self) -> Iterator[Task]:
        """Depth-first walk over every executable, nested ones included."""
        for task in self.executables:
            yield task
            yield from task.iter_tasks()

    def data_flow_tasks(self) -> List[Task]:
        return [task for task in self.iter_tasks() if task.is_data_flow and task.data_flow is not None]


class DependencyGraph(BaseModel):
    """Connections and variables shared by name across a directory of packages."""
    directory: str = ""
    file_count: int = 0
    connections: Dict[str, Set[str]] = Field(default_factory=dict)
    variables: Dict[str, Set[str]] = Field(default_factory=dict)

    def shared_connection_names(self) -> List[str]:
        return sorted(name for name, packages in self.connections.items() if len(packages) >= 2)

    def shared_variable_names(self) -> List[str]:
        return sorted(name for name, packages in self.variables.items() if len(packages) >= 2)

    @property
    def shared_connections(self) -> int:
        return len(self.shared_connection_names())

    @property
    def shared_variables(self) -> int:
        return len(self.shared_variable_names())


class AnalysisResult(BaseModel):
    """Outcome of a single report operation; failures are carried, not raised."""
    tool_name: str
    file_path: str = ""
    package: str = ""
    timestamp: str = ""
    status: str = "success"
    data: Any = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.status == "success"

    @classmethod
    def create(cls, tool_name: str, file_path: str, data: Any = None,
               error: Optional[Exception] = None) -> "AnalysisResult":
        """Build a result, recording the error kind when the error carries one."""
        result = cls(
            tool_name=tool_name,
            file_path=file_path,
            package=os.path.basename(file_path) if file_path else "",
            timestamp=datetime.now().astimezone().isoformat(timespec="seconds"),
            data=data,
        )
        if error is not None:
            result.status = "error"
            result.error = str(error)
            result.error_kind = getattr(error, "kind", None)
        return result


Task.model_rebuild()
