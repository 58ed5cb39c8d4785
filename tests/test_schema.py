"""Unit tests for tool schemas and proof-field augmentation (webacy_mcp/schema.py)."""

from webacy_mcp.schema import PROOF_ARG, PROOF_DESCRIPTION, ToolSchema, augment_schema
from webacy_mcp.tools import PingArgs, SanctionStatusArgs


class TestToolSchema:
    def test_from_model_exposes_model_fields(self):
        schema = ToolSchema.from_model(SanctionStatusArgs)

        assert schema.has_field("walletAddress")
        assert schema.json_schema["required"] == ["walletAddress"]

    def test_with_optional_field_returns_new_schema(self):
        base = ToolSchema.from_model(SanctionStatusArgs)

        extended = base.with_optional_field("extra", "An extra field")

        assert extended.has_field("extra")
        assert not base.has_field("extra")
        assert "extra" not in extended.json_schema.get("required", [])

    def test_to_dict_is_a_copy(self):
        schema = ToolSchema.from_model(SanctionStatusArgs)

        exported = schema.to_dict()
        exported["properties"]["walletAddress"]["description"] = "changed"

        assert schema.properties["walletAddress"]["description"] != "changed"

    def test_source_dict_changes_do_not_leak_in(self):
        source = {"type": "object", "properties": {"a": {"type": "string"}}}
        schema = ToolSchema(source)

        source["properties"]["b"] = {"type": "string"}

        assert not schema.has_field("b")


class TestAugmentSchema:
    def test_free_tier_schema_unchanged(self):
        base = ToolSchema.from_model(PingArgs)

        assert augment_schema(base, 0) is base
        assert not augment_schema(base, 0).has_field(PROOF_ARG)

    def test_protected_tier_adds_optional_proof_field(self):
        base = ToolSchema.from_model(SanctionStatusArgs)

        augmented = augment_schema(base, 1)

        proof_field = augmented.properties[PROOF_ARG]
        assert proof_field == {"description": PROOF_DESCRIPTION}
        assert PROOF_ARG not in augmented.json_schema["required"]
        # Declared fields are kept as they were.
        assert augmented.properties["walletAddress"] == base.properties["walletAddress"]

    def test_augmentation_is_idempotent(self):
        base = ToolSchema.from_model(SanctionStatusArgs)

        once = augment_schema(base, 3)
        twice = augment_schema(once, 3)

        assert twice == once
        assert list(twice.properties).count(PROOF_ARG) == 1

    def test_augmenting_empty_model_schema(self):
        augmented = augment_schema(ToolSchema.from_model(PingArgs), 5)

        assert augmented.json_schema["type"] == "object"
        assert list(augmented.properties) == [PROOF_ARG]
