"""
Namespace normalization for DTSX documents.

Package files qualify every tag and attribute with ``DTS:`` and may declare the
DTS namespace as the default namespace. Stripping both lets one decoder work
across the 2008 and 2012+ layouts.
"""

QUALIFIER_TOKEN = "DTS:"
DEFAULT_NAMESPACE_DECLARATION = 'xmlns="www.microsoft.com/SqlServer/Dts"'


def normalize_text(text: str) -> str:
    """Remove the DTS qualifier and default namespace declaration from text.

    Removal repeats until nothing changes, since deleting one token can splice
    a new one together (``DTDTS:S:``). This keeps the operation idempotent.
    Occurrences inside attribute values or text content are stripped too.
    """
    previous = None
    while previous != text:
        previous = text
        text = text.replace(QUALIFIER_TOKEN, "")
        text = text.replace(DEFAULT_NAMESPACE_DECLARATION, "")
    return text


def normalize_document(data: bytes) -> bytes:
    """Byte-level counterpart of normalize_text; never fails."""
    token = QUALIFIER_TOKEN.encode("ascii")
    declaration = DEFAULT_NAMESPACE_DECLARATION.encode("ascii")

    previous = None
    while previous != data:
        previous = data
        data = data.replace(token, b"")
        data = data.replace(declaration, b"")
    return data
