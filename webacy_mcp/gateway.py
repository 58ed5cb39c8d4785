"""
Authorization gateway: tier-aware dispatch of tool calls.

Every tool call goes through `AuthorizationGateway.dispatch()`, which runs one
fixed sequence per call:

    1. Bypass   demo mode: strip the proof, run the handler, done
    2. Free     tier 0: run the handler, done (no proof lookup, no authority)
    3. Extract  find the proof in the arguments or the session (may be absent)
    4. Request  build the authority-facing request with the ORIGINAL arguments
    5. Protect  hand the authority a gated adapter around the real handler
    6. Decide   classify the authority's reply:
                  Approved  -> response envelope
                  Denied    -> AuthorizationError (message passed through)
                  Malformed -> UpstreamError

The gateway never verifies proofs itself. The authority is the final arbiter,
so even an absent or unreadable proof is forwarded and the authority's denial
is what the caller sees. The adapter strips the proof before the real handler
runs, so tool handlers never receive it.

No state is kept between calls: each call is authorized independently.
"""

import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping, Protocol

from webacy_mcp.proof import ExtractedProof, extract_proof, strip_proof
from webacy_mcp.responses import (
    Approved,
    Denied,
    ToolResponseEnvelope,
    classify_authority_response,
    normalize,
)
from webacy_mcp.schema import PROOF_ARG

logger = logging.getLogger("mcp-server.gateway")

ToolHandler = Callable[[dict[str, Any]], Awaitable[Any]]
AuthorityRequest = dict[str, Any]
AuthorityHandler = Callable[[AuthorityRequest], Awaitable[Any]]


class GatewayMode(Enum):
    NORMAL = "normal"
    DEMO_BYPASS = "demo_bypass"


class AuthorizationError(Exception):
    """
    The authority denied the call (missing, invalid or insufficient proof).

    This is a policy decision, not a transient failure, so it is never
    retried. `remediation_text` is what the client should be shown: the
    authority's own reply when it sent one, so that client tooling can walk
    the user through acquiring the required token and retrying.

    Attributes:
        message: The authority's reason
        details: The authority's structured "error" value, if any
        response_text: The authority's verbatim reply text, if any
    """

    def __init__(self, message: str, details: Any = None, response_text: str | None = None):
        self.message = message
        self.details = details
        self.response_text = response_text
        super().__init__(message)

    @property
    def remediation_text(self) -> str:
        return self.response_text or self.message


class UpstreamError(Exception):
    """The authority replied with a shape the gateway does not recognize."""

    def __init__(self, tool_name: str, response: Any):
        self.tool_name = tool_name
        self.response = response
        super().__init__(f"Unexpected response from authorization authority for tool '{tool_name}'")


class AuthorityClient(Protocol):
    """
    The external authority that validates proofs.

    `protect(tier, handler)` returns a gated invocation: called with a request
    envelope, it either runs `handler` and returns its result, or returns a
    structured denial without running it.
    """

    def protect(self, tier: int, handler: AuthorityHandler) -> AuthorityHandler: ...


@dataclass(frozen=True)
class CallEnvelope:
    """Everything the gateway knows about one protected call."""

    tool_name: str
    tier: int
    arguments: Mapping[str, Any]
    proof: ExtractedProof | None

    def to_request(self) -> AuthorityRequest:
        """
        The MCP-style request handed to the authority.

        Carries the original arguments, proof included. A proof that came from
        the session is placed under the proof argument so the authority finds
        it in the same spot either way.
        """
        arguments = dict(self.arguments)
        if self.proof is not None and arguments.get(PROOF_ARG) is None:
            arguments[PROOF_ARG] = self.proof.raw
        return {
            "method": "tools/call",
            "params": {"name": self.tool_name, "arguments": arguments},
        }


class AuthorizationGateway:
    """
    Tier-aware tool dispatcher.

    Args:
        authority: The AuthorityClient consulted for every gated call
        mode: GatewayMode.DEMO_BYPASS skips authorization entirely
    """

    def __init__(self, authority: AuthorityClient, mode: GatewayMode = GatewayMode.NORMAL):
        self.authority = authority
        self.mode = mode

    async def dispatch(
        self,
        tool_name: str,
        tier: int,
        handler: ToolHandler,
        arguments: Mapping[str, Any],
        session_proof: Any = None,
    ) -> ToolResponseEnvelope:
        """
        Run one tool call through the authorization sequence.

        Raises:
            AuthorizationError: The authority denied the call
            UpstreamError: The authority's reply could not be interpreted
        """
        request_id = str(uuid.uuid4())[:8]
        log_data = {"request_id": request_id, "tool": tool_name, "tier": tier}

        if self.mode is GatewayMode.DEMO_BYPASS:
            logger.warning(
                "Tool call bypassed authorization (demo mode)",
                extra={"auth_data": {**log_data, "decision": "bypassed"}},
            )
            return normalize(await handler(strip_proof(arguments)))

        if tier == 0:
            logger.info(
                "Tool call allowed: free tier",
                extra={"auth_data": {**log_data, "decision": "free"}},
            )
            return normalize(await handler(dict(arguments)))

        proof = extract_proof(arguments, session_proof, tool_name=tool_name)
        call = CallEnvelope(tool_name=tool_name, tier=tier, arguments=arguments, proof=proof)

        async def run_handler(request: AuthorityRequest) -> ToolResponseEnvelope:
            params = request.get("params") or {}
            clean_args = strip_proof(params.get("arguments") or {})
            return normalize(await handler(clean_args))

        logger.info(
            "Tool call forwarded to authority",
            extra={
                "auth_data": {
                    **log_data,
                    "decision": "forwarded",
                    "proof_source": proof.source if proof else None,
                }
            },
        )
        gated = self.authority.protect(tier, run_handler)
        response = await gated(call.to_request())

        result = classify_authority_response(response)

        if isinstance(result, Approved):
            logger.info(
                "Tool call authorized",
                extra={"auth_data": {**log_data, "decision": "allowed"}},
            )
            return normalize(result.payload)

        if isinstance(result, Denied):
            logger.warning(
                "Tool call denied: %s",
                result.message,
                extra={"auth_data": {**log_data, "decision": "denied"}},
            )
            raise AuthorizationError(
                result.message,
                details=result.details,
                response_text=result.response_text,
            )

        logger.error(
            "Unexpected response from authorization authority",
            extra={
                "auth_data": {
                    **log_data,
                    "decision": "upstream_error",
                    "response": repr(result.raw),
                }
            },
        )
        raise UpstreamError(tool_name, result.raw)
