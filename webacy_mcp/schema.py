"""
Tool input schemas and the proof parameter.

Protected tools accept one extra, optional argument, `__evmauth`, carrying the
caller's authorization proof. Clients only send arguments that appear in the
advertised schema, so the proof field is added to the schema of every tool
whose tier is non-zero. Free tools advertise their schema unchanged.

ToolSchema is an immutable value: adding a field returns a new schema and
leaves the original untouched, so the registry's base schemas can be shared.
"""

import copy
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping

from pydantic import BaseModel

# Reserved argument name for the authorization proof.
PROOF_ARG = "__evmauth"
PROOF_DESCRIPTION = "Authentication proof (automatically provided)"


@dataclass(frozen=True)
class ToolSchema:
    """A JSON schema (object type) describing a tool's accepted arguments."""

    json_schema: Mapping[str, Any]

    def __post_init__(self):
        # Freeze our own copy so later edits to the source dict can't leak in.
        object.__setattr__(self, "json_schema", MappingProxyType(copy.deepcopy(dict(self.json_schema))))

    @classmethod
    def from_model(cls, model: type[BaseModel]) -> "ToolSchema":
        return cls(model.model_json_schema())

    @property
    def properties(self) -> Mapping[str, Any]:
        return self.json_schema.get("properties", {})

    def has_field(self, name: str) -> bool:
        return name in self.properties

    def with_optional_field(
        self,
        name: str,
        description: str,
        field_schema: Mapping[str, Any] | None = None,
    ) -> "ToolSchema":
        """
        Return a new schema with an optional field `name` added.

        `field_schema` defaults to an unconstrained ("any") schema. If the field
        is already declared, the schema is returned as-is.
        """
        if self.has_field(name):
            return self

        schema = self.to_dict()
        properties = dict(schema.get("properties", {}))
        properties[name] = {**(field_schema or {}), "description": description}
        schema["properties"] = properties
        schema.setdefault("type", "object")
        # Optional, so not listed in "required".
        return ToolSchema(schema)

    def to_dict(self) -> dict[str, Any]:
        """A mutable deep copy, suitable for handing to the MCP runtime."""
        return copy.deepcopy(dict(self.json_schema))


def augment_schema(schema: ToolSchema, tier: int) -> ToolSchema:
    """Effective schema for a tool of the given tier (adds the proof field when gated)."""
    if tier == 0:
        return schema
    return schema.with_optional_field(PROOF_ARG, PROOF_DESCRIPTION)
