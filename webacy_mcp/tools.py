"""
Tool definitions: argument models, handlers and the registry.

Each tool is a thin call to one Webacy endpoint. Its argument model is the
single source of truth for both the advertised input schema and the
validation its handler applies. Handlers receive the call arguments as a dict
(already stripped of any proof) and return the upstream JSON as indented text.

Tier assignments live in tiers.py; descriptions of protected tools are
extended here with the token they require.
"""

import functools
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

from pydantic import BaseModel, Field

from webacy_mcp.schema import ToolSchema
from webacy_mcp.webacy import WebacyClient

SERVICE_NAME = "Webacy Risk Analysis MCP Server"

SUPPORTED_CHAINS = "eth, arb, base, bsc, pol, opt, sol, sei, sui, ton"


@dataclass(frozen=True)
class ToolDescriptor:
    name: str
    description: str
    input_schema: ToolSchema
    handler: Callable[[dict[str, Any]], Awaitable[str]]


# ---------------------------------------------------------------------------
# Argument models
# ---------------------------------------------------------------------------


class PingArgs(BaseModel):
    pass


class AddressThreatArgs(BaseModel):
    address: str = Field(description="The blockchain address to analyze for threat risks")
    chain: str | None = Field(
        default=None,
        description=f"Chain to query ({SUPPORTED_CHAINS}). Defaults to eth",
    )
    show_low_risk: bool | None = Field(
        default=None,
        description="Return details on low risk issues found with the address",
    )


class SanctionStatusArgs(BaseModel):
    walletAddress: str = Field(description="The wallet address to check for sanctions")


class ContractArgs(BaseModel):
    contractAddress: str = Field(description="The smart contract address to analyze")
    fromBytecode: bool | None = Field(
        default=None,
        description="Set to true for bytecode scanning of unverified contracts (slower but more thorough)",
    )
    refreshCache: bool | None = Field(
        default=None,
        description="Set to true to re-run analysis, false to retrieve cached results",
    )
    callback: str | None = Field(
        default=None,
        description="Callback URL to retrieve delayed data from bytecode analysis",
    )


class TransactionArgs(BaseModel):
    txHash: str = Field(description="The transaction hash to analyze")


class UrlArgs(BaseModel):
    url: str = Field(description="The URL to analyze for risks")


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def _query(**params: Any) -> dict[str, str]:
    """Query parameters with unset values dropped and booleans as true/false."""
    query = {}
    for key, value in params.items():
        if value is None:
            continue
        query[key] = str(value).lower() if isinstance(value, bool) else str(value)
    return query


def _dump(data: Any) -> str:
    return json.dumps(data, indent=2)


async def ping(args: dict[str, Any]) -> str:
    PingArgs.model_validate(args)
    return _dump(
        {
            "status": "OK",
            "service": SERVICE_NAME,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "message": "Server is running and ready to analyze blockchain security risks",
        }
    )


async def check_address_threat(client: WebacyClient, args: dict[str, Any]) -> str:
    params = AddressThreatArgs.model_validate(args)
    data = await client.request(
        f"/addresses/{params.address}",
        params=_query(chain=params.chain, show_low_risk=params.show_low_risk),
    )
    return _dump(data)


async def check_sanction_status(client: WebacyClient, args: dict[str, Any]) -> str:
    params = SanctionStatusArgs.model_validate(args)
    data = await client.request(f"/addresses/sanctioned/{params.walletAddress}")
    return _dump(data)


async def analyze_contract(client: WebacyClient, args: dict[str, Any]) -> str:
    params = ContractArgs.model_validate(args)
    data = await client.request(
        f"/contracts/{params.contractAddress}",
        params=_query(
            fromBytecode=params.fromBytecode,
            refreshCache=params.refreshCache,
            callback=params.callback,
        ),
    )
    return _dump(data)


async def analyze_transaction(client: WebacyClient, args: dict[str, Any]) -> str:
    params = TransactionArgs.model_validate(args)
    data = await client.request(f"/transactions/{params.txHash}")
    return _dump(data)


async def analyze_url(client: WebacyClient, args: dict[str, Any]) -> str:
    params = UrlArgs.model_validate(args)
    data = await client.request("/url", method="POST", json={"url": params.url})
    return _dump(data)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


def build_registry(client: WebacyClient) -> dict[str, ToolDescriptor]:
    """All tools served by this server, keyed by name, bound to `client`."""
    descriptors = [
        ToolDescriptor(
            name="ping",
            description="Server health check and information",
            input_schema=ToolSchema.from_model(PingArgs),
            handler=ping,
        ),
        ToolDescriptor(
            name="checkAddressThreat",
            description=(
                "Analyze threat considerations for an address - checks if address "
                "poses risk to others"
            ),
            input_schema=ToolSchema.from_model(AddressThreatArgs),
            handler=functools.partial(check_address_threat, client),
        ),
        ToolDescriptor(
            name="checkSanctionStatus",
            description=(
                "Check if a wallet address is sanctioned or included in any "
                "sanctioned address databases"
            ),
            input_schema=ToolSchema.from_model(SanctionStatusArgs),
            handler=functools.partial(check_sanction_status, client),
        ),
        ToolDescriptor(
            name="analyzeContract",
            description=(
                "Real-time smart contract risk analysis through fuzzing, static "
                "analysis, and dynamic analysis"
            ),
            input_schema=ToolSchema.from_model(ContractArgs),
            handler=functools.partial(analyze_contract, client),
        ),
        ToolDescriptor(
            name="analyzeTransaction",
            description=(
                "Get risk analysis for a specific transaction hash including "
                "counterparty risks and asset risks"
            ),
            input_schema=ToolSchema.from_model(TransactionArgs),
            handler=functools.partial(analyze_transaction, client),
        ),
        ToolDescriptor(
            name="analyzeUrl",
            description=(
                "Predict maliciousness of a URL using ML models trained on web3 data "
                "- detect phishing and scam sites"
            ),
            input_schema=ToolSchema.from_model(UrlArgs),
            handler=functools.partial(analyze_url, client),
        ),
    ]
    return {descriptor.name: descriptor for descriptor in descriptors}


def describe(descriptor: ToolDescriptor, tier: int) -> str:
    """Description advertised to clients; protected tools explain the auth flow."""
    if tier == 0:
        return descriptor.description
    return (
        f"{descriptor.description} Requires EVMAuth Token #{tier}. "
        "IMPORTANT: Call this tool directly without checking wallet first! "
        "If you lack authentication, you'll receive clear error instructions. "
        "The auth flow is: 1) Call this directly, 2) Get error with required tokens, "
        "3) Acquire the token and sign a proof, 4) Retry with proof."
    )
