"""
Shared test fixtures for the Webacy MCP server test suite.

Key fixtures:
- make_proof: factory for proofs accepted (or rejected) by the
  local token authority
- authority: a TokenAuthority configured like the server's default
- fake_authority: a recording AuthorityClient with a scripted reply, for
  exercising the gateway's interpretation of authority responses
- webacy_routes / webacy_client: a WebacyClient wired to httpx.MockTransport,
  so no test touches the network

Testing approach:
- Unit tests (test_schema, test_proof, test_responses, test_gateway,
  test_authority, test_webacy, test_registry) exercise each module directly.
- test_server.py drives the FastMCP ASGI app over Streamable HTTP.
"""

import datetime
import json

import httpx
import jwt
import pytest

from webacy_mcp.authority import TokenAuthority
from webacy_mcp.config import settings
from webacy_mcp.webacy import WebacyClient

TEST_SECRET = settings.proof_secret_key
TEST_ALGORITHM = settings.proof_algorithm
TEST_CONTRACT = settings.contract_address
TEST_CHAIN_ID = settings.chain_id
TEST_WALLET = "0x1111111111111111111111111111111111111111"


# ---------------------------------------------------------------------------
# Proof factory fixture
# ---------------------------------------------------------------------------
@pytest.fixture
def make_proof():
    """
    Factory fixture to mint proofs.

    Usage in tests:
        def test_something(make_proof):
            proof = make_proof(tokens=[1])                 # dict
            proof_json = make_proof(tokens=[1], as_json=True)  # JSON string
    """

    def _make_proof(
        tokens: list[int] | None = None,
        wallet: str = TEST_WALLET,
        address: str | None = TEST_WALLET,
        secret: str = TEST_SECRET,
        contract: str = TEST_CONTRACT,
        chain_id: int = TEST_CHAIN_ID,
        exp_hours: float = 1.0,
        extra_claims: dict | None = None,
        as_json: bool = False,
    ):
        now = datetime.datetime.now(datetime.timezone.utc)
        claims: dict = {
            "sub": wallet,
            "tokens": tokens if tokens is not None else [],
            "contract": contract,
            "chain_id": chain_id,
            "iat": now,
            "exp": now + datetime.timedelta(hours=exp_hours),
        }
        if extra_claims:
            claims.update(extra_claims)

        proof: dict = {"signature": jwt.encode(claims, secret, algorithm=TEST_ALGORITHM)}
        if address is not None:
            proof["address"] = address
        return json.dumps(proof) if as_json else proof

    return _make_proof


@pytest.fixture
def authority():
    return TokenAuthority(
        secret_key=TEST_SECRET,
        contract_address=TEST_CONTRACT,
        chain_id=TEST_CHAIN_ID,
        rpc_url=settings.rpc_url,
        algorithm=TEST_ALGORITHM,
    )


# ---------------------------------------------------------------------------
# Scripted authority
# ---------------------------------------------------------------------------
class FakeAuthority:
    """
    AuthorityClient double.

    Records every protect() call and every request it receives. With
    `reply=None` it approves by running the wrapped handler; otherwise it
    returns `reply` without running it.
    """

    def __init__(self, reply=None):
        self.reply = reply
        self.protected_tiers: list[int] = []
        self.requests: list[dict] = []

    def protect(self, tier, handler):
        self.protected_tiers.append(tier)

        async def gated(request):
            self.requests.append(request)
            if self.reply is None:
                return await handler(request)
            return self.reply

        return gated


@pytest.fixture
def fake_authority():
    """Factory: fake_authority(reply=...) returns a fresh FakeAuthority."""
    return FakeAuthority


# ---------------------------------------------------------------------------
# Webacy API double
# ---------------------------------------------------------------------------
@pytest.fixture
def webacy_routes():
    """
    Mutable routing table for the mocked Webacy API.

    Maps "METHOD /path" to a (status, json_body) pair. Every request received
    is appended to `webacy_routes["_requests"]`.
    """
    return {"_requests": []}


@pytest.fixture
def webacy_client(webacy_routes):
    def handle(request: httpx.Request) -> httpx.Response:
        webacy_routes["_requests"].append(request)
        key = f"{request.method} {request.url.path}"
        if key not in webacy_routes:
            return httpx.Response(404, json={"message": "not found"})
        status, body = webacy_routes[key]
        return httpx.Response(status, json=body)

    return WebacyClient(
        api_key="test-api-key",
        base_url="https://api.webacy.test",
        transport=httpx.MockTransport(handle),
    )
