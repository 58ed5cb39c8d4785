"""
Webacy risk-analysis MCP server with EVMAuth tier protection, built on FastMCP v2.

This module creates and runs the MCP server with:
- Six Webacy tools: one free (ping) and five gated by EVMAuth token tiers
- An authorization gateway in front of every tool call
- The `__evmauth` proof parameter advertised on protected tools only
- Health and readiness HTTP endpoints
- Structured JSON logging for all authorization decisions
- stdio transport for local clients, Streamable HTTP for hosted deployments

Architecture:
    The flow for every tools/call request:

    1. FastMCP routes the call to the tool's GatedTool.run()
    2. run() picks up a session proof from the X-EVMAuth header (HTTP only)
    3. AuthorizationGateway.dispatch() decides: bypass, free, or gated
    4. For gated tools, the authority validates the proof and either runs
       the Webacy handler or returns a denial
    5. Denials are raised as ToolError with the authority's instructions,
       which FastMCP returns to the client as an isError result

Running the server:
    python -m webacy_mcp.server

    With MCP_TRANSPORT=streamable-http this serves:
    - MCP endpoint at /mcp (Streamable HTTP)
    - Health check at /health
    - Readiness check at /ready
"""

import json
import logging
import sys
from typing import Any, Awaitable, Callable

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from fastmcp.server.dependencies import get_http_headers
from fastmcp.tools.tool import Tool, ToolResult
from mcp.types import TextContent
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from webacy_mcp.authority import TokenAuthority
from webacy_mcp.config import Settings, settings
from webacy_mcp.gateway import (
    AuthorityClient,
    AuthorizationError,
    AuthorizationGateway,
    GatewayMode,
)
from webacy_mcp.responses import ToolResponseEnvelope
from webacy_mcp.schema import augment_schema
from webacy_mcp.tiers import Tier, required_tier, tools_for_tier
from webacy_mcp.tools import ToolDescriptor, build_registry, describe
from webacy_mcp.webacy import WebacyClient

SERVER_NAME = "webacy-risk-mcp"

# ---------------------------------------------------------------------------
# Structured JSON Logging
# ---------------------------------------------------------------------------
# One JSON object per log line. Structured fields are attached with
# logger.info("msg", extra={"auth_data": {...}}).
#
# Over stdio, stdout carries the MCP protocol itself, so logs go to stderr.


class JSONLogFormatter(logging.Formatter):
    """
    Formats log records as single-line JSON objects.

    Example output:

        {"timestamp": "2026-02-06T10:30:00", "level": "INFO", "logger": "mcp-server.gateway",
         "message": "Tool call authorized", "request_id": "1f2e3d4c", "tool": "analyzeUrl"}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if hasattr(record, "auth_data"):
            log_entry.update(record.auth_data)
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


def configure_logging(config: Settings) -> None:
    stream = sys.stdout if config.transport == "streamable-http" else sys.stderr
    handlers: list[logging.Handler] = [logging.StreamHandler(stream)]
    if config.log_file is not None:
        handlers.append(logging.FileHandler(config.log_file, encoding="utf-8"))
    for log_handler in handlers:
        log_handler.setFormatter(JSONLogFormatter())

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper()),
        handlers=handlers,
        force=True,
    )


configure_logging(settings)
logger = logging.getLogger("mcp-server")


# ---------------------------------------------------------------------------
# Gated tool
# ---------------------------------------------------------------------------


def _session_proof(header_name: str) -> str | None:
    """
    Proof supplied once per session in an HTTP header.

    Returns None over stdio, where there is no HTTP request.
    """
    headers = get_http_headers(include_all=True)
    return headers.get(header_name.lower())


class GatedTool(Tool):
    """
    A FastMCP tool whose every call goes through the authorization gateway.

    `parameters` holds the tier-augmented schema; `tool_handler` is the plain
    Webacy handler and never sees the proof.
    """

    tier: int
    tool_handler: Callable[[dict[str, Any]], Awaitable[Any]]
    dispatcher: Callable[..., Awaitable[ToolResponseEnvelope]]
    session_proof_header: str = "x-evmauth"

    async def run(self, arguments: dict[str, Any]) -> ToolResult:
        try:
            response = await self.dispatcher(
                self.name,
                self.tier,
                self.tool_handler,
                arguments,
                session_proof=_session_proof(self.session_proof_header),
            )
        except AuthorizationError as e:
            raise ToolError(e.remediation_text) from e

        return ToolResult(
            content=[TextContent(type="text", text=item["text"]) for item in response["content"]]
        )


def build_tool(descriptor: ToolDescriptor, gateway: AuthorizationGateway, config: Settings) -> GatedTool:
    tier = required_tier(descriptor.name)
    return GatedTool(
        name=descriptor.name,
        description=describe(descriptor, tier),
        parameters=augment_schema(descriptor.input_schema, tier).to_dict(),
        tier=tier,
        tool_handler=descriptor.handler,
        dispatcher=gateway.dispatch,
        session_proof_header=config.session_proof_header,
    )


# ---------------------------------------------------------------------------
# Server factory
# ---------------------------------------------------------------------------


def create_server(
    config: Settings = settings,
    *,
    authority: AuthorityClient | None = None,
    api_client: WebacyClient | None = None,
) -> FastMCP:
    """
    Build the MCP server.

    Args:
        config: Settings to build from (defaults to the process settings)
        authority: Authority consulted for gated calls (defaults to TokenAuthority)
        api_client: Webacy client used by the tools (defaults to one built from config)
    """
    if api_client is None:
        api_client = WebacyClient(
            api_key=config.webacy_api_key,
            base_url=config.webacy_api_url,
            timeout=config.request_timeout,
        )
    if authority is None:
        authority = TokenAuthority(
            secret_key=config.proof_secret_key,
            contract_address=config.contract_address,
            chain_id=config.chain_id,
            rpc_url=config.rpc_url,
            algorithm=config.proof_algorithm,
        )

    mode = GatewayMode.DEMO_BYPASS if config.demo_mode else GatewayMode.NORMAL
    gateway = AuthorizationGateway(authority, mode)

    server = FastMCP(
        name=SERVER_NAME,
        instructions=(
            "Blockchain security risk analysis powered by Webacy: address threats, "
            "sanctions, smart contracts, transactions and URLs. Tools other than ping "
            "require an EVMAuth token; call them directly and follow the error "
            "instructions if authentication is missing."
        ),
    )

    for descriptor in build_registry(api_client).values():
        tool = build_tool(descriptor, gateway, config)
        server.add_tool(tool)
        if tool.tier == Tier.FREE:
            logger.info("Registered %s - FREE (no token required)", tool.name)
        else:
            logger.info("Registered %s - Protected with Token ID %d", tool.name, tool.tier)

    # -----------------------------------------------------------------------
    # Health and Readiness Endpoints (HTTP transport only, no authorization)
    # -----------------------------------------------------------------------

    @server.custom_route("/health", methods=["GET"])
    async def health_check(request: Request) -> Response:
        """Liveness probe: is the server process alive and responsive?"""
        return JSONResponse({"status": "healthy"})

    @server.custom_route("/ready", methods=["GET"])
    async def readiness_check(request: Request) -> Response:
        """Readiness probe: can the tools reach Webacy?"""
        if not config.webacy_api_key:
            return JSONResponse(
                {"status": "not_ready", "reason": "Webacy API key not configured"},
                status_code=503,
            )
        return JSONResponse({"status": "ready"})

    return server


mcp = create_server()


def log_startup_summary(config: Settings) -> None:
    for tier in Tier:
        logger.info(
            "Tier %s (Token %d): %s",
            tier.name.title(),
            tier.value,
            ", ".join(tools_for_tier(tier)) or "-",
        )

    if config.demo_mode:
        logger.warning(
            "DEMO MODE ACTIVE: authentication bypassed for all protected tools. "
            "Do not use in production!"
        )
    else:
        logger.info(
            "EVMAuth protection enabled (contract=%s, chain_id=%d)",
            config.contract_address,
            config.chain_id,
        )


# ---------------------------------------------------------------------------
# Server entry point
# ---------------------------------------------------------------------------


def main() -> None:
    log_startup_summary(settings)

    if settings.transport == "streamable-http":
        logger.info(
            "Starting MCP server on %s:%d (transport=streamable-http)",
            settings.host,
            settings.port,
        )
        mcp.run(
            transport="streamable-http",
            host=settings.host,
            port=settings.port,
            log_level=settings.log_level,
        )
    else:
        logger.info("Starting MCP server (transport=stdio)")
        mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
