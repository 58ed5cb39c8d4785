"""
Local token authority: proof validation and tool protection.

In production the authority is an on-chain service that checks whether the
wallet behind a proof holds the required EVMAuth token. This module is a
self-contained implementation of the same `protect()` contract for local runs
and tests: token holdings are carried in a signed JWT inside the proof.

Proof structure (the `__evmauth` argument, object or JSON string):
    {
        "address": "0xabc...",          # Wallet presenting the proof (optional)
        "signature": "<jwt>"            # Signed holdings statement
    }

Signed claims (JWT payload):
    {
        "sub": "0xabc...",              # Wallet address
        "tokens": [1, 3],               # EVMAuth token ids held
        "contract": "0x5448...",        # Token contract the holdings refer to
        "chain_id": 1223953,            # Chain of that contract
        "exp": 1738800000               # Expiry (Unix timestamp)
    }

Denials are returned the way the production authority returns them: as a
normal tool response whose text is a JSON error object, with the token ids the
caller needs and the steps to obtain them.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping

import jwt

from webacy_mcp.gateway import AuthorityHandler, AuthorityRequest
from webacy_mcp.responses import envelope
from webacy_mcp.schema import PROOF_ARG

logger = logging.getLogger("mcp-server.authority")


class ProofError(Exception):
    """
    Raised when a proof does not authorize a call.

    Attributes:
        code: Machine-readable reason (e.g. "EVMAUTH_PROOF_MISSING")
        message: Human-readable description, sent to the caller
    """

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(message)


@dataclass(frozen=True)
class ProofGrant:
    """
    Validated holdings extracted from a proof.

    Attributes:
        wallet: The wallet address the holdings belong to
        tokens: Token ids held by that wallet
    """

    wallet: str
    tokens: tuple[int, ...]


class TokenAuthority:
    """Validates proofs against a shared signing key and guards tool handlers."""

    def __init__(
        self,
        secret_key: str,
        contract_address: str,
        chain_id: int,
        rpc_url: str = "",
        algorithm: str = "HS256",
    ):
        self.secret_key = secret_key
        self.contract_address = contract_address
        self.chain_id = chain_id
        self.rpc_url = rpc_url
        self.algorithm = algorithm

    def verify(self, raw_proof: Any, tier: int) -> ProofGrant:
        """
        Check that `raw_proof` grants access to `tier`.

        Steps:
        1. A proof is present and decodes to an object with a signature
        2. The signature is a valid, unexpired JWT signed with our key
        3. The holdings refer to our contract and chain
        4. The presenting address (if given) matches the signed wallet
        5. The required token id is among the holdings

        Raises:
            ProofError: If any step fails
        """
        if raw_proof is None:
            raise ProofError("EVMAUTH_PROOF_MISSING", "Authentication required: no proof provided")

        proof = raw_proof
        if isinstance(proof, str):
            try:
                proof = json.loads(proof)
            except ValueError:
                raise ProofError("EVMAUTH_PROOF_MALFORMED", "Proof is not valid JSON")

        if not isinstance(proof, Mapping) or not isinstance(proof.get("signature"), str):
            raise ProofError("EVMAUTH_PROOF_MALFORMED", "Proof must be an object with a signature")

        try:
            claims = jwt.decode(
                proof["signature"],
                self.secret_key,
                algorithms=[self.algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            raise ProofError("EVMAUTH_PROOF_EXPIRED", "Proof has expired")
        except jwt.InvalidTokenError as e:
            raise ProofError("EVMAUTH_PROOF_INVALID", f"Invalid proof signature: {e}")

        if str(claims.get("contract", "")).lower() != self.contract_address.lower():
            raise ProofError("EVMAUTH_CONTRACT_MISMATCH", "Proof was issued for a different token contract")

        if claims.get("chain_id") != self.chain_id:
            raise ProofError("EVMAUTH_CHAIN_MISMATCH", "Proof was issued for a different chain")

        wallet = claims["sub"]
        address = proof.get("address")
        if address is not None and str(address).lower() != str(wallet).lower():
            raise ProofError("EVMAUTH_ADDRESS_MISMATCH", "Proof address does not match the signed wallet")

        tokens = claims.get("tokens", [])
        if not isinstance(tokens, list) or not all(isinstance(t, int) for t in tokens):
            raise ProofError("EVMAUTH_PROOF_INVALID", "Invalid tokens claim: must be a list of token ids")

        if tier not in tokens:
            raise ProofError(
                "EVMAUTH_INSUFFICIENT_TOKENS",
                f"Insufficient tokens: EVMAuth token #{tier} required",
            )

        return ProofGrant(wallet=wallet, tokens=tuple(tokens))

    def denial(self, error: ProofError, tier: int) -> dict[str, Any]:
        """Build the denial response for `error`: a text envelope holding a JSON error."""
        body = {
            "error": {
                "code": error.code,
                "message": error.message,
                "details": {
                    "requiredTokens": [tier],
                    "contractAddress": self.contract_address,
                    "chainId": self.chain_id,
                    "rpcUrl": self.rpc_url,
                },
                "remediation": [
                    f"Acquire EVMAuth token #{tier} from contract {self.contract_address}",
                    "Sign an authentication proof with the wallet holding the token",
                    f"Retry the tool call with the proof in the '{PROOF_ARG}' argument",
                ],
            }
        }
        return envelope(json.dumps(body, indent=2))

    def protect(self, tier: int, handler: AuthorityHandler) -> AuthorityHandler:
        """Wrap `handler` so that it only runs for requests carrying a proof valid for `tier`."""

        async def gated(request: AuthorityRequest) -> Any:
            params = request.get("params") or {}
            arguments = params.get("arguments") or {}
            try:
                grant = self.verify(arguments.get(PROOF_ARG), tier)
            except ProofError as e:
                logger.warning(
                    "Proof rejected",
                    extra={
                        "auth_data": {
                            "tool": params.get("name"),
                            "tier": tier,
                            "reason": e.code,
                        }
                    },
                )
                return self.denial(e, tier)

            logger.info(
                "Proof accepted",
                extra={
                    "auth_data": {
                        "tool": params.get("name"),
                        "tier": tier,
                        "wallet": grant.wallet,
                    }
                },
            )
            return await handler(request)

        return gated
