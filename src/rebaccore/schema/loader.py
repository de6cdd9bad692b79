"""JSON serialization of namespace schemas.

Accepted document shapes::

    [ {"name": "organization", "relations": {...}, "permissions": {...}}, ... ]
    {"namespaces": [ ... ]}

Relations may use either the tagged ``rewrite`` form written by
:func:`dump_schemas` or the flat form (``union``, ``intersection``,
``inheritsFrom``, ``computedUserset``).
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable

from pydantic import ValidationError

from ..exceptions import SchemaIssue, SchemaValidationError
from .models import NamespaceSchema

logger = logging.getLogger(__name__)


def _issues_from_validation_error(name: str, exc: ValidationError) -> list[SchemaIssue]:
    return [
        SchemaIssue(name, ".".join(str(part) for part in err["loc"]) or "<root>", err["msg"])
        for err in exc.errors()
    ]


def parse_schemas(document: Any) -> list[NamespaceSchema]:
    """Build NamespaceSchema models from an already-decoded JSON document.

    Raises:
        SchemaValidationError: On shape errors, with one issue per problem.
    """
    if isinstance(document, dict) and "namespaces" in document:
        document = document["namespaces"]
    if not isinstance(document, list):
        raise SchemaValidationError(
            [SchemaIssue("<document>", "<root>", "expected a list of namespaces or {'namespaces': [...]}")]
        )

    schemas: list[NamespaceSchema] = []
    issues: list[SchemaIssue] = []
    for position, entry in enumerate(document):
        name = entry.get("name") if isinstance(entry, dict) else None
        label = name if isinstance(name, str) and name else f"<namespace #{position}>"
        try:
            schemas.append(NamespaceSchema.model_validate(entry))
        except ValidationError as exc:
            issues.extend(_issues_from_validation_error(label, exc))

    if issues:
        raise SchemaValidationError(issues, message="Malformed schema document")
    return schemas


def load_schemas_from_json(text: str) -> list[NamespaceSchema]:
    """Parse namespace schemas from a JSON string."""
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise SchemaValidationError(
            [SchemaIssue("<document>", f"line {exc.lineno}", exc.msg)],
            message="Schema document is not valid JSON",
        ) from exc
    return parse_schemas(document)


def load_schemas_from_file(path: str | Path) -> list[NamespaceSchema]:
    """Read and parse a JSON schema document from disk."""
    path = Path(path)
    logger.info("Loading namespace schemas from %s", path)
    return load_schemas_from_json(path.read_text(encoding="utf-8"))


def dump_schemas(schemas: Iterable[NamespaceSchema], *, indent: int | None = 2) -> str:
    """Serialize schemas to a JSON document accepted by the loader."""
    document = {
        "namespaces": [
            schema.model_dump(mode="json", by_alias=True, exclude_none=True) for schema in schemas
        ]
    }
    return json.dumps(document, indent=indent, ensure_ascii=False)


__all__ = [
    "dump_schemas",
    "load_schemas_from_file",
    "load_schemas_from_json",
    "parse_schemas",
]
