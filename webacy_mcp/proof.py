"""
Authorization proof extraction.

A caller attaches its proof either as the `__evmauth` tool argument or, over
the HTTP transport, once per session through a request header. This module
finds the proof and reports on it for diagnostics. It does not validate it:
the authority makes the decision, and whatever the caller sent is forwarded to
it untouched.

Extraction never raises. A proof that cannot be decoded is logged as a warning
and treated as absent for logging, but the raw value is still forwarded.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Literal, Mapping

from webacy_mcp.schema import PROOF_ARG

logger = logging.getLogger("mcp-server.proof")

ProofSource = Literal["arguments", "session"]


@dataclass(frozen=True)
class ExtractedProof:
    """
    A proof found on a call.

    Attributes:
        raw: The value exactly as supplied (object or JSON string)
        parsed: Best-effort decoded object, None if it could not be decoded
        source: Where the proof came from ("arguments" or "session")
    """

    raw: Any
    parsed: dict[str, Any] | None
    source: ProofSource

    @property
    def signature_length(self) -> int | None:
        if self.parsed is None:
            return None
        signature = self.parsed.get("signature")
        if signature is None:
            return None
        try:
            return len(signature)
        except TypeError:
            return None


def parse_proof(raw: Any) -> dict[str, Any] | None:
    """Decode a proof into a dict, or return None (with a warning) if that fails."""
    if isinstance(raw, Mapping):
        return dict(raw)

    if isinstance(raw, (str, bytes)):
        try:
            decoded = json.loads(raw)
        except ValueError as e:
            logger.warning("Failed to parse auth proof: %s", e)
            return None
        if isinstance(decoded, dict):
            return decoded

    logger.warning("Auth proof is not an object (got %s)", type(raw).__name__)
    return None


def extract_proof(
    arguments: Mapping[str, Any],
    session_proof: Any = None,
    *,
    tool_name: str | None = None,
) -> ExtractedProof | None:
    """
    Find the proof for one call.

    The `__evmauth` argument wins over a session-level proof. Returns None when
    neither is present; that is not an error, the authority issues the denial.
    """
    if arguments.get(PROOF_ARG) is not None:
        raw, source = arguments[PROOF_ARG], "arguments"
    elif session_proof is not None:
        raw, source = session_proof, "session"
    else:
        logger.info(
            "No auth proof supplied",
            extra={"auth_data": {"tool": tool_name, "proof": "absent"}},
        )
        return None

    proof = ExtractedProof(raw=raw, parsed=parse_proof(raw), source=source)

    logger.info(
        "Auth proof supplied" if proof.parsed is not None else "Auth proof unreadable",
        extra={
            "auth_data": {
                "tool": tool_name,
                "proof": "present" if proof.parsed is not None else "absent",
                "source": source,
                "signature_length": proof.signature_length,
            }
        },
    )
    return proof


def strip_proof(arguments: Mapping[str, Any]) -> dict[str, Any]:
    """Copy of `arguments` without the proof, safe to hand to a tool handler."""
    return {key: value for key, value in arguments.items() if key != PROOF_ARG}
