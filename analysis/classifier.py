"""
Classification of pipeline components and control flow tasks.

Every lookup is an ordered list of (predicate, result) pairs evaluated top to
bottom; the first predicate that holds decides the result. Unknown identifiers
are never an error.
"""
from typing import Callable, List, Optional, Tuple

from models import ComponentCategory

Rule = Tuple[Callable[[str], bool], str]


def _contains(marker: str) -> Callable[[str], bool]:
    return lambda value: marker in value


def _first_match(rules: List[Rule], value: str) -> Optional[str]:
    for predicate, result in rules:
        if predicate(value):
            return result
    return None


# Case-sensitive substring match on the component class id
CATEGORY_RULES: List[Rule] = [
    (_contains("Source"), ComponentCategory.SOURCE),
    (_contains("Destination"), ComponentCategory.DESTINATION),
    (_contains("Transformation"), ComponentCategory.TRANSFORMATION),
]

# Matched against the lower-cased class id
VENDOR_RULES: List[Rule] = [
    (_contains("kingswaysoft"), "KingswaySoft"),
    (_contains("cozyroc"), "CozyRoc"),
    (_contains("pragmaticworks"), "Pragmatic Works"),
    (_contains("pragmatic"), "Pragmatic Works"),
    (_contains("auntiedot"), "AuntieDot"),
    (_contains("bluessis"), "BlueSSIS"),
]

FIRST_PARTY_PREFIXES = (
    "microsoft.sqlserver.dts.pipeline",
    "microsoft.sqlserver.dts",
    "microsoft.",
)

UNKNOWN_VENDOR = "Unknown/Custom"

_TASK_ASSEMBLY_SUFFIX = ", Version=14.0.0.0, Culture=neutral, PublicKeyToken=89845dcd8080cc91"


def _task_id(task_class: str, assembly: str) -> str:
    return f"Microsoft.SqlServer.Dts.Tasks.{task_class}.{task_class}, Microsoft.SqlServer.{assembly}{_TASK_ASSEMBLY_SUFFIX}"


TASK_TYPES = {
    _task_id("ExecuteSQLTask", "SQLTask"): "Execute SQL Task",
    _task_id("BulkInsertTask", "BulkInsertTask"): "Bulk Insert Task",
    _task_id("DataFlowTask", "DataFlowTask"): "Data Flow Task",
    _task_id("FileSystemTask", "FileSystemTask"): "File System Task",
    _task_id("ScriptTask", "ScriptTask"): "Script Task",
    _task_id("SendMailTask", "SendMailTask"): "Send Mail Task",
    _task_id("ExecuteProcessTask", "ExecuteProcessTask"): "Execute Process Task",
    _task_id("WebServiceTask", "WebServiceTask"): "Web Service Task",
    _task_id("WmiTask", "WmiTask"): "WMI Task",
    _task_id("XmlTask", "XmlTask"): "XML Task",
    _task_id("TransferObjectsTask", "TransferObjectsTask"): "Transfer Objects Task",
    _task_id("MessageQueueTask", "MessageQueueTask"): "Message Queue Task",
    # Short creation names written by SSIS 2012+
    "Microsoft.ExecuteSQLTask": "Execute SQL Task",
    "Microsoft.SendMailTask": "Send Mail Task",
    "Microsoft.ExecuteProcessTask": "Execute Process Task",
    "Microsoft.ScriptTask": "Script Task",
    "Microsoft.BulkInsertTask": "Bulk Insert Task",
    "Microsoft.DataProfilingTask": "Data Profiling Task",
    "Microsoft.MessageQueueTask": "Message Queue Task",
    "Microsoft.FileSystemTask": "File System Task",
    "Microsoft.Pipeline": "Data Flow Task",
}

UNKNOWN_TASK = "Unknown Task"

CONTAINER_RULES: List[Rule] = [
    (lambda value: value in ("Microsoft.Sequence", "STOCK:SEQUENCE"), "Sequence Container"),
    (lambda value: value in ("Microsoft.ForLoop", "STOCK:FORLOOP"), "For Loop Container"),
    (lambda value: value in ("Microsoft.ForEachLoop", "STOCK:FOREACHLOOP"), "Foreach Loop Container"),
]


def classify_component(class_id: str) -> ComponentCategory:
    """Semantic role of a component from its class id."""
    return _first_match(CATEGORY_RULES, class_id) or ComponentCategory.UNKNOWN


def classify_vendor(class_id: str) -> Optional[str]:
    """
    Third-party vendor of a component, if it is a custom one.

    Returns the vendor name for a recognized marker, "Unknown/Custom" for any
    other id outside the first-party namespaces, and None for first-party
    components.
    """
    lowered = class_id.lower()
    vendor = _first_match(VENDOR_RULES, lowered)
    if vendor:
        return vendor
    if not lowered.startswith(FIRST_PARTY_PREFIXES):
        return UNKNOWN_VENDOR
    return None


def classify_task_type(creation_name: str) -> str:
    """Human-readable task type for a creation identifier."""
    if creation_name in TASK_TYPES:
        return TASK_TYPES[creation_name]

    parts = creation_name.split(".")
    if len(parts) > 1:
        label = parts[-2]
        if label.endswith("Task"):
            label = label[:-len("Task")]
        return label
    return UNKNOWN_TASK


def classify_container(creation_name: str) -> Optional[str]:
    """Container label, or None when the executable is not a container."""
    return _first_match(CONTAINER_RULES, creation_name)
