"""
Strict structural decoder for normalized SSIS packages.

Turns normalized DTSX bytes (see parsing.normalizer) into the typed Package
model. Covers both the attribute-based layout of SSIS 2012+ and the
Property-element layout of SSIS 2008, and preserves document order for every
repeating group.
"""
import xml.etree.ElementTree as ET
from typing import Dict, List, Optional
import logging

from models import (
    Package, Task, DataFlow, DataFlowComponent, ComponentInput, ComponentOutput,
    Column, PathReference, Variable, Parameter, Connection, Configuration,
    EventHandler, PrecedenceConstraint, ForLoop, ForeachLoop
)
from .errors import MalformedDocumentError

logger = logging.getLogger(__name__)

TRUE_VALUES = ('true', '1', '-1')

CONTAINER_FLAG_ATTRIBUTES = ('Disabled', 'FailPackageOnFailure', 'FailParentOnFailure')


def _local(tag: str) -> str:
    """Tag or attribute name without any residual {namespace} qualifier."""
    return tag.split('}')[-1] if '}' in tag else tag


class PackageDecoder:
    """Decodes normalized package bytes into a Package model."""

    def decode(self, data: bytes) -> Package:
        """
        Decode normalized DTSX bytes.

        Raises:
            MalformedDocumentError: if the bytes are not well-formed XML or do not
                have the structure of a package document.
        """
        try:
            root = ET.fromstring(data)
        except ET.ParseError as e:
            raise MalformedDocumentError(f"Package is not well-formed XML: {e}") from e

        if _local(root.tag) != 'Executable':
            raise MalformedDocumentError(
                f"Root element is <{_local(root.tag)}>, expected <Executable>"
            )

        try:
            package = Package(
                name=self._attr_or_property(root, 'ObjectName'),
                properties=self._extract_properties(root),
                executables=self._extract_executables(root),
                connections=self._extract_connections(root),
                variables=self._extract_variables(root),
                parameters=self._extract_parameters(root),
                configurations=self._extract_configurations(root),
                event_handlers=self._extract_event_handlers(root),
                precedence_constraints=self._extract_precedence_constraints(root),
            )
        except RecursionError as e:
            raise MalformedDocumentError("Package executables are nested too deeply to decode") from e

        logger.debug(
            f"Decoded package '{package.name}': {len(package.executables)} executables, "
            f"{len(package.connections)} connections, {len(package.variables)} variables"
        )
        return package

    # Element helpers

    def _attr(self, elem: ET.Element, name: str, default: str = '') -> str:
        """Get attribute value, tolerating a namespace left on the attribute."""
        value = elem.get(name)
        if value is not None:
            return value
        for key, val in elem.attrib.items():
            if _local(key) == name:
                return val
        return default

    def _children(self, elem: ET.Element, tag: str) -> List[ET.Element]:
        return [child for child in elem if _local(child.tag) == tag]

    def _child(self, elem: Optional[ET.Element], tag: str) -> Optional[ET.Element]:
        if elem is None:
            return None
        for child in elem:
            if _local(child.tag) == tag:
                return child
        return None

    def _grandchildren(self, elem: ET.Element, group: str, tag: str) -> List[ET.Element]:
        """
        Items of a repeating group, e.g. <Variables><Variable/>...</Variables>.

        SSIS 2008 places the items directly under the parent without the group
        element; both forms are collected in document order.
        """
        items = []
        for child in elem:
            name = _local(child.tag)
            if name == group:
                items.extend(self._children(child, tag))
            elif name == tag:
                items.append(child)
        return items

    def _text(self, elem: Optional[ET.Element]) -> str:
        if elem is None or elem.text is None:
            return ''
        return elem.text

    def _property(self, elem: ET.Element, name: str) -> str:
        """Value of a <Property Name="..."> child, SSIS 2008 style."""
        for prop in self._children(elem, 'Property'):
            if self._attr(prop, 'Name') == name:
                return self._text(prop)
        return ''

    def _attr_or_property(self, elem: ET.Element, name: str) -> str:
        return self._attr(elem, name) or self._property(elem, name)

    def _attr_or_child(self, elem: ET.Element, name: str) -> str:
        """First non-empty of attribute, child element text and Property child."""
        return self._attr(elem, name) or self._text(self._child(elem, name)) or self._property(elem, name)

    def _int(self, value: str, field_name: str, default: int = 0) -> int:
        if value is None or value.strip() == '':
            return default
        try:
            return int(value.strip())
        except ValueError as e:
            raise MalformedDocumentError(
                f"Expected an integer for {field_name}, got '{value}'"
            ) from e

    def _bool(self, value: str) -> bool:
        return value.strip().lower() in TRUE_VALUES if value else False

    def _extract_properties(self, elem: ET.Element) -> Dict[str, str]:
        properties = {}
        for prop in self._children(elem, 'Property'):
            name = self._attr(prop, 'Name')
            if name:
                properties[name] = self._text(prop)
        return properties

    # Connection managers

    def _extract_connections(self, root: ET.Element) -> List[Connection]:
        """Extract connection managers; the first declaration of a name wins."""
        connections = []
        seen = set()

        for conn in self._grandchildren(root, 'ConnectionManagers', 'ConnectionManager'):
            name = self._attr_or_property(conn, 'ObjectName')
            if name in seen:
                logger.debug(f"Duplicate connection manager '{name}' ignored")
                continue
            seen.add(name)

            connections.append(Connection(
                name=name,
                creation_name=self._attr_or_property(conn, 'CreationName'),
                connection_string=self._extract_connection_string(conn),
            ))

        return connections

    def _extract_connection_string(self, conn: ET.Element) -> str:
        """Connection string from whichever payload shape is populated."""
        object_data = self._child(conn, 'ObjectData')
        if object_data is None:
            return ''

        candidates = []
        inner = self._child(object_data, 'ConnectionManager')
        if inner is not None:
            candidates.append(self._attr(inner, 'ConnectionString'))
            candidates.append(self._property(inner, 'ConnectionString'))
        for payload in ('MsmqConnectionManager', 'SmtpConnectionManager'):
            shape = self._child(object_data, payload)
            if shape is not None:
                candidates.append(self._attr(shape, 'ConnectionString'))

        for candidate in candidates:
            if candidate:
                return candidate
        return ''

    # Variables, parameters, configurations

    def _extract_variables(self, elem: ET.Element) -> List[Variable]:
        variables = []

        for var in self._grandchildren(elem, 'Variables', 'Variable'):
            expression = self._attr_or_property(var, 'Expression')
            variables.append(Variable(
                name=self._attr_or_property(var, 'ObjectName'),
                value=self._text(self._child(var, 'VariableValue')),
                expression=expression or None,
                namespace=self._attr_or_property(var, 'Namespace') or 'User',
            ))

        return variables

    def _extract_parameters(self, root: ET.Element) -> List[Parameter]:
        parameters = []
        elements = (self._grandchildren(root, 'PackageParameters', 'PackageParameter')
                    + self._grandchildren(root, 'Parameters', 'Parameter'))

        for param in elements:
            value = self._text(self._child(param, 'ParameterValue')) or self._property(param, 'ParameterValue')
            parameters.append(Parameter(
                name=self._attr(param, 'ObjectName'),
                data_type=self._attr(param, 'DataType'),
                value=value,
                description=self._attr(param, 'Description'),
                required=self._bool(self._attr(param, 'Required')),
                sensitive=self._bool(self._attr(param, 'Sensitive')),
            ))

        return parameters

    def _extract_configurations(self, root: ET.Element) -> List[Configuration]:
        configurations = []

        for config in self._grandchildren(root, 'Configurations', 'Configuration'):
            configurations.append(Configuration(
                name=self._attr_or_property(config, 'ObjectName'),
                type_code=self._int(self._attr_or_property(config, 'ConfigurationType'), 'ConfigurationType'),
                description=self._attr_or_property(config, 'Description'),
                configuration_string=self._attr_or_child(config, 'ConfigurationString'),
                configured_type=self._attr_or_child(config, 'ConfiguredType'),
                configured_value=self._attr_or_child(config, 'ConfiguredValue'),
            ))

        return configurations

    # Control flow

    def _extract_executables(self, elem: ET.Element) -> List[Task]:
        return [self._extract_task(child)
                for child in self._grandchildren(elem, 'Executables', 'Executable')]

    def _extract_task(self, elem: ET.Element) -> Task:
        """Extract a task or container, recursing into nested executables."""
        creation_name = self._attr(elem, 'CreationName') or self._attr(elem, 'ExecutableType')
        object_data = self._child(elem, 'ObjectData')

        # SSIS 2012+ writes the container flags as attributes
        properties = self._extract_properties(elem)
        for flag in CONTAINER_FLAG_ATTRIBUTES:
            value = self._attr(elem, flag)
            if value:
                properties.setdefault(flag, value)

        task = Task(
            name=self._attr_or_property(elem, 'ObjectName'),
            description=self._attr_or_property(elem, 'Description'),
            ref_id=self._attr(elem, 'refId'),
            creation_name=creation_name,
            properties=properties,
            executables=self._extract_executables(elem),
            variables=self._extract_variables(elem),
            precedence_constraints=self._extract_precedence_constraints(elem),
        )

        if object_data is not None:
            pipeline = self._child(object_data, 'pipeline')
            if pipeline is not None:
                task.data_flow = self._extract_data_flow(pipeline)
            task.script_source = self._extract_script_source(object_data)

        if 'ForLoop' in creation_name or 'FORLOOP' in creation_name:
            task.for_loop = self._extract_for_loop(elem, object_data)
        elif 'ForEachLoop' in creation_name or 'FOREACHLOOP' in creation_name:
            task.foreach_loop = self._extract_foreach_loop(elem, object_data)

        return task

    def _extract_script_source(self, object_data: ET.Element) -> Optional[str]:
        """Inner markup of a script task's ScriptProject, if any."""
        for project in object_data.iter():
            if _local(project.tag) == 'ScriptProject':
                parts = [project.text or '']
                parts.extend(ET.tostring(child, encoding='unicode') for child in project)
                source = ''.join(parts).strip()
                return source or None
        return None

    def _extract_for_loop(self, elem: ET.Element, object_data: Optional[ET.Element]) -> ForLoop:
        details = None
        if object_data is not None:
            for node in object_data.iter():
                if _local(node.tag) == 'ForLoop':
                    details = node
                    break

        def expression(name: str) -> str:
            value = self._attr(elem, name)
            if not value and details is not None:
                value = self._attr_or_child(details, name)
            return value

        return ForLoop(
            init_expression=expression('InitExpression'),
            eval_expression=expression('EvalExpression'),
            assign_expression=expression('AssignExpression'),
        )

    def _extract_foreach_loop(self, elem: ET.Element, object_data: Optional[ET.Element]) -> ForeachLoop:
        loop = ForeachLoop()

        # SSIS 2012+: <ForEachEnumerator CreationName="..."> plus ForEachVariableMappings
        enumerator = self._child(elem, 'ForEachEnumerator')
        if enumerator is not None:
            loop.enumerator = self._attr(enumerator, 'CreationName')
            for node in enumerator.iter():
                if _local(node.tag) == 'FEFEProperty':
                    loop.folder = loop.folder or self._attr(node, 'Folder')
                    loop.file_spec = loop.file_spec or self._attr(node, 'FileSpec')
                    if self._attr(node, 'Recurse'):
                        loop.recurse = self._bool(self._attr(node, 'Recurse'))
        for mapping in self._grandchildren(elem, 'ForEachVariableMappings', 'ForEachVariableMapping'):
            loop.variable_mappings.append(self._attr(mapping, 'VariableName'))

        # Older layout nested under ObjectData/ForeachLoop
        details = None
        if object_data is not None:
            for node in object_data.iter():
                if _local(node.tag) == 'ForeachLoop':
                    details = node
                    break
        if details is not None:
            loop.enumerator = loop.enumerator or self._attr(details, 'Enumerator')
            file_enum = self._child(details, 'FileEnumerator')
            if file_enum is not None:
                loop.folder = loop.folder or self._text(self._child(file_enum, 'Folder'))
                loop.file_spec = loop.file_spec or self._text(self._child(file_enum, 'FileSpec'))
                loop.recurse = loop.recurse or self._bool(self._text(self._child(file_enum, 'Recurse')))
            for enum_name in ('CollectionEnumerator', 'ItemEnumerator'):
                items = self._child(self._child(details, enum_name), 'Items')
                if items is not None:
                    loop.items.extend(self._text(item) for item in self._children(items, 'Item'))
            mappings = self._child(details, 'VariableMappings')
            if mappings is not None:
                loop.variable_mappings.extend(
                    self._attr(m, 'VariableName') for m in self._children(mappings, 'VariableMapping')
                )

        return loop

    def _extract_precedence_constraints(self, elem: ET.Element) -> List[PrecedenceConstraint]:
        constraints = []

        for pc in self._grandchildren(elem, 'PrecedenceConstraints', 'PrecedenceConstraint'):
            from_ref = self._attr(pc, 'From')
            to_ref = self._attr(pc, 'To')

            # SSIS 2008: <Executable IDREF="..." IsFrom="-1|0"/> endpoints
            if not from_ref and not to_ref:
                for endpoint in self._children(pc, 'Executable'):
                    if self._bool(self._attr(endpoint, 'IsFrom')):
                        from_ref = from_ref or self._attr(endpoint, 'IDREF')
                    else:
                        to_ref = to_ref or self._attr(endpoint, 'IDREF')

            constraints.append(PrecedenceConstraint(
                name=self._attr_or_property(pc, 'ObjectName'),
                from_ref=from_ref,
                to_ref=to_ref,
                expression=self._attr_or_property(pc, 'Expression'),
                eval_op=self._attr_or_property(pc, 'EvalOp'),
            ))

        return constraints

    def _extract_event_handlers(self, root: ET.Element) -> List[EventHandler]:
        handlers = []

        for handler in self._grandchildren(root, 'EventHandlers', 'EventHandler'):
            handlers.append(EventHandler(
                name=self._attr_or_property(handler, 'ObjectName'),
                event_type=(self._attr_or_property(handler, 'EventHandlerType')
                            or self._attr_or_property(handler, 'EventName')),
                container_id=self._attr_or_property(handler, 'ContainerID'),
                executables=self._extract_executables(handler),
                variables=self._extract_variables(handler),
                precedence_constraints=self._extract_precedence_constraints(handler),
            ))

        return handlers

    # Data flow

    def _extract_data_flow(self, pipeline: ET.Element) -> DataFlow:
        """Extract pipeline components and raw path triples."""
        components = [
            self._extract_component(comp)
            for comp in self._grandchildren(pipeline, 'components', 'component')
        ]
        paths = [
            PathReference(
                ref_id=self._attr(path, 'refId'),
                start_id=self._attr(path, 'startId'),
                end_id=self._attr(path, 'endId'),
            )
            for path in self._grandchildren(pipeline, 'paths', 'path')
        ]
        return DataFlow(components=components, paths=paths)

    def _extract_component(self, elem: ET.Element) -> DataFlowComponent:
        properties = self._extract_component_properties(elem)

        inputs = []
        for inp in self._grandchildren(elem, 'inputs', 'input'):
            columns = [
                self._extract_column(col, cached=True)
                for col in self._grandchildren(inp, 'inputColumns', 'inputColumn')
            ]
            inputs.append(ComponentInput(name=self._attr(inp, 'name'), columns=columns))

        outputs = []
        for output in self._grandchildren(elem, 'outputs', 'output'):
            columns = [
                self._extract_column(col)
                for col in self._grandchildren(output, 'outputColumns', 'outputColumn')
            ]
            outputs.append(ComponentOutput(
                name=self._attr(output, 'name'),
                is_error_output=self._bool(self._attr(output, 'isErrorOut')),
                columns=columns,
            ))

        return DataFlowComponent(
            name=self._attr(elem, 'name'),
            ref_id=self._attr(elem, 'refId'),
            description=self._attr(elem, 'description'),
            class_id=self._attr(elem, 'componentClassID'),
            properties=properties,
            inputs=inputs,
            outputs=outputs,
        )

    def _extract_component_properties(self, elem: ET.Element) -> Dict[str, str]:
        """Component properties; older layouts nest them under objectData/pipelineComponent."""
        containers = self._children(elem, 'properties')
        if not containers:
            pipeline_component = self._child(self._child(elem, 'objectData'), 'pipelineComponent')
            if pipeline_component is not None:
                containers = self._children(pipeline_component, 'properties')

        properties = {}
        for container in containers:
            for prop in self._children(container, 'property'):
                name = self._attr(prop, 'name') or self._attr(prop, 'Name')
                if name:
                    properties[name] = self._text(prop)
        return properties

    def _extract_column(self, elem: ET.Element, cached: bool = False) -> Column:
        """Column details; input columns may only carry the cached* attributes."""
        name = self._attr(elem, 'name')
        data_type = self._attr(elem, 'dataType')
        length = self._attr(elem, 'length')
        if cached:
            name = name or self._attr(elem, 'cachedName')
            data_type = data_type or self._attr(elem, 'cachedDataType')
            length = length or self._attr(elem, 'cachedLength')

        return Column(
            name=name,
            data_type=data_type,
            length=self._int(length, f"length of column '{name}'"),
        )
