"""
Schema validation for pipeline files.

A small JSON-Schema-style validator covering the keywords the pipeline
file needs, plus the schema of the file itself. Every problem is reported
with its path so a broken ``buildgate.yaml`` can be fixed in one pass.

Example:
    errors = validate_pipeline({"steps": [{"name": "lint"}]})
    # [ValidationError("steps[0].command", "is required")]
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any


@dataclass
class ValidationError:
    """
    A validation error with path and message.

    Attributes:
        path: Path to the invalid field (e.g. "steps[1].timeout")
        message: Description of the validation error
        value: The invalid value (if available)
        constraint: The constraint that was violated (if available)
    """

    path: str
    message: str
    value: Any = None
    constraint: str | None = None

    def __str__(self) -> str:
        if self.path:
            return f"{self.path}: {self.message}"
        return self.message


class SchemaValidator:
    """
    JSON Schema-like validator for configuration dictionaries.

    Supports: type (including unions), enum, minLength, pattern, minimum,
    exclusiveMinimum, minItems, items, required, properties and
    additionalProperties (boolean or schema).
    """

    TYPE_MAP = {
        "string": str,
        "integer": int,
        "number": (int, float),
        "boolean": bool,
        "array": list,
        "object": dict,
        "null": type(None),
    }

    def __init__(self, schema: dict[str, Any]) -> None:
        self.schema = schema

    def validate(self, data: Any, path: str = "") -> list[ValidationError]:
        """Validate data against the schema, returning every error found."""
        return self._validate_value(data, self.schema, path)

    def _validate_value(self, value: Any, schema: dict[str, Any], path: str) -> list[ValidationError]:
        errors: list[ValidationError] = []

        if "type" in schema:
            types = schema["type"] if isinstance(schema["type"], list) else [schema["type"]]
            if not any(self._check_type(value, t) for t in types):
                expected = " or ".join(types)
                errors.append(
                    ValidationError(path, f"must be {expected}, got {type(value).__name__}", value, "type")
                )
                return errors

        if "enum" in schema and value not in schema["enum"]:
            errors.append(ValidationError(path, f"must be one of: {schema['enum']}", value, "enum"))

        if isinstance(value, str):
            if "minLength" in schema and len(value) < schema["minLength"]:
                errors.append(
                    ValidationError(path, f"must have minimum length {schema['minLength']}", value, "minLength")
                )
            if "pattern" in schema and not re.match(schema["pattern"], value):
                errors.append(
                    ValidationError(path, f"must match pattern {schema['pattern']}", value, "pattern")
                )

        if isinstance(value, (int, float)) and not isinstance(value, bool):
            if "minimum" in schema and value < schema["minimum"]:
                errors.append(ValidationError(path, f"must be >= {schema['minimum']}", value, "minimum"))
            if "exclusiveMinimum" in schema and value <= schema["exclusiveMinimum"]:
                errors.append(
                    ValidationError(path, f"must be > {schema['exclusiveMinimum']}", value, "exclusiveMinimum")
                )

        if isinstance(value, list):
            errors.extend(self._validate_array(value, schema, path))

        if isinstance(value, dict):
            errors.extend(self._validate_object(value, schema, path))

        return errors

    def _check_type(self, value: Any, type_name: str) -> bool:
        # bool is an int subclass, but never a valid integer or number here
        if type_name in ("integer", "number") and isinstance(value, bool):
            return False
        expected = self.TYPE_MAP.get(type_name)
        if expected is None:
            return True
        return isinstance(value, expected)  # type: ignore[arg-type]

    def _validate_array(self, value: list, schema: dict[str, Any], path: str) -> list[ValidationError]:
        errors: list[ValidationError] = []

        if "minItems" in schema and len(value) < schema["minItems"]:
            errors.append(
                ValidationError(path, f"must have at least {schema['minItems']} items", value, "minItems")
            )

        if "items" in schema:
            for i, item in enumerate(value):
                errors.extend(self._validate_value(item, schema["items"], f"{path}[{i}]"))

        return errors

    def _validate_object(self, value: dict, schema: dict[str, Any], path: str) -> list[ValidationError]:
        errors: list[ValidationError] = []

        for field in schema.get("required", []):
            if field not in value:
                errors.append(ValidationError(_join(path, field), "is required", constraint="required"))

        properties = schema.get("properties", {})
        for field, field_schema in properties.items():
            if field in value:
                errors.extend(self._validate_value(value[field], field_schema, _join(path, field)))

        additional = schema.get("additionalProperties", True)
        for field in value:
            if field in properties:
                continue
            if additional is False:
                errors.append(
                    ValidationError(
                        _join(path, str(field)),
                        "is not a recognized field",
                        value[field],
                        "additionalProperties",
                    )
                )
            elif isinstance(additional, dict):
                errors.extend(self._validate_value(value[field], additional, _join(path, str(field))))

        return errors


def _join(path: str, field: str) -> str:
    return f"{path}.{field}" if path else field


_ARGV_SCHEMA: dict[str, Any] = {
    "type": ["string", "array"],
    "minLength": 1,
    "minItems": 1,
    "items": {"type": ["string", "integer", "number"]},
}

STEP_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["name", "command"],
    "properties": {
        "name": {"type": "string", "minLength": 1},
        "command": _ARGV_SCHEMA,
        "kind": {"type": "string", "minLength": 1},
        "requires": {"type": "array", "items": {"type": "string", "minLength": 1}},
        "env": {"type": "object", "additionalProperties": {"type": ["string", "integer", "number"]}},
        "cwd": {"type": "string"},
        "timeout": {"type": "number", "exclusiveMinimum": 0},
        "root": {"type": "string"},
        "extension": {"type": "string", "minLength": 1},
    },
    "additionalProperties": False,
}

_PACKAGE_SCHEMA: dict[str, Any] = {
    "type": ["string", "object"],
    "minLength": 1,
    "required": ["name"],
    "properties": {
        "name": {"type": "string", "minLength": 1},
        "executable": {"type": "string", "minLength": 1},
        "pkg_config": {"type": "string", "minLength": 1},
        "version": {"type": "string", "minLength": 1},
    },
    "additionalProperties": False,
}

_BINDING_SCHEMA: dict[str, Any] = {
    "type": ["string", "object"],
    "properties": {
        "value": {"type": "string"},
        "from_command": _ARGV_SCHEMA,
    },
    "additionalProperties": False,
}

PIPELINE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "on": {
            "type": "array",
            "items": {"type": "string", "enum": ["push", "pull_request"]},
        },
        "timeout": {"type": "number", "exclusiveMinimum": 0},
        "steps": {"type": "array", "minItems": 1, "items": STEP_SCHEMA},
        "provisioning": {
            "type": "object",
            "properties": {
                "packages": {"type": "array", "items": _PACKAGE_SCHEMA},
                "env": {"type": "object", "additionalProperties": _BINDING_SCHEMA},
            },
            "additionalProperties": False,
        },
    },
    "additionalProperties": False,
}


def validate_pipeline(data: Any) -> list[ValidationError]:
    """Validate a parsed pipeline file."""
    return SchemaValidator(PIPELINE_SCHEMA).validate(data)
