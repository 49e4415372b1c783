"""
Liberal regex-based scan of normalized package text.

Used where a quick overview of a pipeline is enough and the document may not
decode under the strict profile. Any pattern that does not match yields an
empty value or an empty list rather than an error.
"""
import re
from typing import Dict, List, Optional
from xml.sax.saxutils import unescape

from models import PathReference

PIPELINE_MARKER = "Microsoft.Pipeline"

COMPONENT_TAG = re.compile(r'<component\b[^>]*>')
PATH_TAG = re.compile(r'<path\b[^>]*>')

# Attribute entities beyond the three handled by unescape() by default
ENTITIES = {"&quot;": '"', "&apos;": "'"}


def _attribute(tag: str, name: str) -> str:
    """Unescaped value of an attribute in an opening tag, or an empty string."""
    match = re.search(r'(?<![\w:])' + re.escape(name) + r'="([^"]*)"', tag)
    if not match:
        return ""
    return unescape(match.group(1), ENTITIES)


class PackageTextScanner:
    """Regex scanner over the normalized text of one package."""

    def __init__(self, text: str):
        self.text = text

    def has_pipeline(self) -> bool:
        return PIPELINE_MARKER in self.text

    def components(self) -> List[Dict[str, str]]:
        """Name, class id and description of every <component> opening tag."""
        components = []
        for match in COMPONENT_TAG.finditer(self.text):
            tag = match.group(0)
            components.append({
                "name": _attribute(tag, "name"),
                "class_id": _attribute(tag, "componentClassID"),
                "description": _attribute(tag, "description"),
            })
        return components

    def component_properties(self, name: str, property_names: Optional[List[str]] = None) -> Dict[str, str]:
        """
        Property values of the named component.

        Only the text between the component's opening tag and its closing tag
        is searched. When property_names is given, only those are returned
        (and only if present).
        """
        body = self._component_body(name)
        if body is None:
            return {}

        properties = {}
        for match in re.finditer(r'<property\b([^>]*)>([^<]*)</property>', body):
            prop_name = _attribute(match.group(1), "name")
            if not prop_name:
                continue
            if property_names is not None and prop_name not in property_names:
                continue
            properties.setdefault(prop_name, unescape(match.group(2), ENTITIES))
        return properties

    def paths(self) -> List[PathReference]:
        """Raw path triples from every <path> opening tag."""
        return [
            PathReference(
                ref_id=_attribute(match.group(0), "refId"),
                start_id=_attribute(match.group(0), "startId"),
                end_id=_attribute(match.group(0), "endId"),
            )
            for match in PATH_TAG.finditer(self.text)
        ]

    def _component_body(self, name: str) -> Optional[str]:
        for match in COMPONENT_TAG.finditer(self.text):
            if _attribute(match.group(0), "name") != name:
                continue
            if match.group(0).endswith("/>"):
                return ""
            end = self.text.find("</component>", match.end())
            if end == -1:
                return self.text[match.end():]
            return self.text[match.end():end]
        return None
