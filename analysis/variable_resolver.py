"""
Depth-bounded substitution of variable references.

Two reference forms are understood: the plain ``@Name`` token and the
bracketed ``@[User::Name]`` form used by SSIS expressions.
"""
import re
from typing import List

from models import Variable

VARIABLE_TOKEN = re.compile(r'@[a-zA-Z_][a-zA-Z0-9_]*')
BRACKETED_TOKEN = re.compile(r'@\[([^\]]+)\]')
REFERENCE = re.compile(BRACKETED_TOKEN.pattern + '|' + VARIABLE_TOKEN.pattern)

DEFAULT_MAX_DEPTH = 10


def _lookup(name: str, variables: List[Variable]) -> str:
    # First match wins, so earlier tables shadow later ones when concatenated
    for variable in variables:
        if variable.name == name:
            return variable.value
    return ""


def _reference_name(token: str) -> str:
    bracketed = BRACKETED_TOKEN.fullmatch(token)
    if not bracketed:
        return token[1:]
    name = bracketed.group(1)
    if name.startswith("User::"):
        name = name[len("User::"):]
    return name


def resolve_variable_expressions(value: str, variables: List[Variable],
                                 max_depth: int = DEFAULT_MAX_DEPTH) -> str:
    """
    Replace variable references with the values of the named variables.

    Substituted values are resolved again with one less level of depth, so
    self-referencing and cyclic variables stop once the depth is used up.
    A reference stays as written when the variable is missing, has an empty
    value, or has a value identical to the reference itself. System variables
    have no design-time value and are rendered as a placeholder.

    Args:
        value: Text that may contain variable references
        variables: Variable table; never modified
        max_depth: Remaining substitution depth; at 0 or below the value is returned unchanged

    Returns:
        The resolved text
    """
    if max_depth <= 0:
        return value

    def substitute(match: re.Match) -> str:
        token = match.group(0)
        if match.group(1) and match.group(1).startswith("System::"):
            return f"<System variable: {match.group(1)}>"
        found = _lookup(_reference_name(token), variables)
        if found and found != token:
            return resolve_variable_expressions(found, variables, max_depth - 1)
        return token

    return REFERENCE.sub(substitute, value)
