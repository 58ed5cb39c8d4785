"""Unit tests for proof extraction (webacy_mcp/proof.py)."""

import logging

from webacy_mcp.proof import extract_proof, parse_proof, strip_proof
from webacy_mcp.schema import PROOF_ARG


class TestParseProof:
    def test_object_proof_is_returned_as_dict(self):
        assert parse_proof({"signature": "abc"}) == {"signature": "abc"}

    def test_json_string_proof_is_decoded(self):
        assert parse_proof('{"signature": "abc"}') == {"signature": "abc"}

    def test_malformed_json_returns_none_and_warns(self, caplog):
        with caplog.at_level(logging.WARNING, logger="mcp-server.proof"):
            assert parse_proof("{not json") is None

        assert "Failed to parse auth proof" in caplog.text

    def test_non_object_json_returns_none(self):
        assert parse_proof("[1, 2, 3]") is None

    def test_unexpected_type_returns_none(self):
        assert parse_proof(42) is None


class TestExtractProof:
    def test_absent_proof_returns_none(self):
        assert extract_proof({"walletAddress": "0xABC"}) is None

    def test_proof_from_arguments(self):
        proof = extract_proof({PROOF_ARG: {"signature": "abcd"}})

        assert proof.source == "arguments"
        assert proof.raw == {"signature": "abcd"}
        assert proof.signature_length == 4

    def test_arguments_take_precedence_over_session(self):
        proof = extract_proof({PROOF_ARG: {"signature": "args"}}, session_proof='{"signature": "session"}')

        assert proof.source == "arguments"
        assert proof.parsed == {"signature": "args"}

    def test_session_proof_used_when_arguments_have_none(self):
        proof = extract_proof({}, session_proof='{"signature": "session"}')

        assert proof.source == "session"
        assert proof.raw == '{"signature": "session"}'
        assert proof.parsed == {"signature": "session"}

    def test_malformed_string_is_retained_not_raised(self):
        """An unreadable proof is still returned so it can be forwarded as-is."""
        proof = extract_proof({PROOF_ARG: "garbage"})

        assert proof is not None
        assert proof.raw == "garbage"
        assert proof.parsed is None
        assert proof.signature_length is None

    def test_signature_without_length_does_not_raise(self):
        proof = extract_proof({PROOF_ARG: {"signature": 12345}})

        assert proof.signature_length is None


class TestStripProof:
    def test_removes_proof_only(self):
        args = {"walletAddress": "0xABC", PROOF_ARG: {"signature": "abc"}}

        assert strip_proof(args) == {"walletAddress": "0xABC"}
        # Input is left untouched.
        assert PROOF_ARG in args

    def test_no_proof_is_a_plain_copy(self):
        args = {"url": "https://example.com"}

        stripped = strip_proof(args)

        assert stripped == args
        assert stripped is not args
