"""
GraphQL field projection.

把嵌套的字段描述转换为 GraphQL selection 语法::

    project(["id", {"name": "createdBy", "fields": ["id", "displayName"]}])
    # -> 'id createdBy { id displayName }'

Grammar: ``Selection := Field | Field '{' Selection+ '}'``
"""

import logging
from collections.abc import Mapping
from typing import Any, List, Optional, Sequence, Union

from watsonwork.core.errors import InvalidFieldSpec

logger = logging.getLogger(__name__)

FieldSpec = Sequence[Union[str, Mapping]]

DEFAULT_FIELD = "id"


def _selection(element: Any) -> str:
    if isinstance(element, str):
        return element

    if isinstance(element, Mapping):
        name = element.get("name")
        fields = element.get("fields")
        if not isinstance(name, str) or not name:
            raise InvalidFieldSpec(f"Nested selection has no usable name: {element!r}")
        if isinstance(fields, (str, bytes)) or not isinstance(fields, Sequence) or not fields:
            raise InvalidFieldSpec(
                f"Nested selection '{name}' needs a non-empty list of fields"
            )
        return f"{name} {{ {project(fields)} }}"

    raise InvalidFieldSpec(
        f"Field must be a string or a {{name, fields}} mapping, got {type(element).__name__}"
    )


def project(fields: Optional[FieldSpec]) -> str:
    """
    Serialize a list of fields into a GraphQL selection set.

    Output order follows input order. An empty or missing field list
    falls back to the single field "id" so the query stays well-formed.

    Raises:
        InvalidFieldSpec: an element is neither a string nor a
            {"name": str, "fields": [...]} mapping
    """
    if not fields:
        logger.warning("No GraphQL fields requested; only id will be returned")
        return DEFAULT_FIELD

    if isinstance(fields, (str, bytes)):
        raise InvalidFieldSpec(f"Fields must be a list, not a bare string: {fields!r}")

    return " ".join(_selection(element) for element in fields)


def ensure_required_field(
    fields: Optional[FieldSpec], required: str = DEFAULT_FIELD
) -> List[Union[str, Mapping]]:
    """
    Return a copy of fields with `required` appended if it is not present.

    Idempotent and non-mutating: ensure_required_field(["id", "x"]) is
    returned unchanged (as a new list).
    """
    result = list(fields or [])
    if required not in result:
        logger.debug("Adding required field '%s' to GraphQL selection", required)
        result.append(required)
    return result
