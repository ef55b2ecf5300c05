from __future__ import annotations

import json
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any

import jsonschema

from ..errors import ProtocolError

SCHEMA_ROOT = Path(__file__).resolve().parent / "schemas"


class SchemaValidationError(ProtocolError):
    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message if not errors else f"{message} {'; '.join(errors)}")
        self.errors = errors or []


@dataclass(frozen=True)
class SchemaRegistry:
    """JSON schemas of the envelopes the node sends back."""

    schema_root: Path = SCHEMA_ROOT
    _validators: dict[str, jsonschema.Validator] = field(
        default_factory=dict, repr=False, compare=False
    )

    def load_schema(self, schema_filename: str) -> dict[str, Any]:
        path = self.schema_root / schema_filename
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)

    def validator_for(self, schema_filename: str) -> jsonschema.Validator:
        validator = self._validators.get(schema_filename)
        if validator is None:
            schema = self.load_schema(schema_filename)
            validator_cls = jsonschema.validators.validator_for(schema)
            validator_cls.check_schema(schema)
            validator = validator_cls(schema)
            self._validators[schema_filename] = validator
        return validator

    def validate_instance(self, instance: Any, schema_filename: str) -> None:
        validator = self.validator_for(schema_filename)
        errors = sorted(validator.iter_errors(instance), key=lambda e: list(e.path))
        if errors:
            formatted = [self._format_error(err) for err in errors]
            raise SchemaValidationError(
                f"Unexpected {schema_filename.removesuffix('.schema.json')} from node.",
                errors=formatted,
            )

    @staticmethod
    def _format_error(error: jsonschema.ValidationError) -> str:
        location = "/".join(str(part) for part in error.path) or "<root>"
        return f"{location}: {error.message}"


@lru_cache(maxsize=1)
def default_registry() -> SchemaRegistry:
    return SchemaRegistry()
