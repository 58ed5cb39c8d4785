"""
Application configuration loaded from environment variables.

Uses pydantic-settings to define typed configuration that automatically reads
from environment variables (or a local .env file). Everything is read once at
startup; nothing in the request path reads the environment again.

Settings groups:
- Server: host, port, transport, logging
- Authorization: EVMAuth contract, chain, proof verification key, demo mode
- Upstream: Webacy API key, base URL and request timeout
"""

import re
from pathlib import Path
from typing import Literal

from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings

CONTRACT_ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")


class StartupError(Exception):
    """Raised when the configuration is missing or invalid. Fatal before serving."""


class Settings(BaseSettings):
    """
    Server configuration with environment variable bindings.

    Each field maps to an environment variable with the MCP_ prefix.
    For example, `demo_mode` reads from MCP_DEMO_MODE and `webacy_api_key`
    reads from MCP_WEBACY_API_KEY.
    """

    # --- Server settings ---

    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "info"

    # Optional path of an additional log file. Stdout logging is always on.
    log_file: Path | None = None

    # "stdio" for local clients, "streamable-http" for hosted deployments.
    transport: Literal["stdio", "streamable-http"] = "stdio"

    # --- Authorization settings ---

    # Skips proof verification for every protected tool. Demonstrations only.
    demo_mode: bool = False

    # The EVMAuth token contract whose token ids gate the tools.
    contract_address: str = "0x5448Dc20ad9e0cDb5Dd0db25e814545d1aa08D96"
    chain_id: int = 1223953
    rpc_url: str = "https://rpc.testnet.radiustech.xyz"

    # Key and algorithm used by the local token authority to check proof
    # signatures. The default is for local development only.
    proof_secret_key: str = "dev-secret-change-me"
    proof_algorithm: str = "HS256"

    # HTTP header that can carry a proof for a whole session instead of
    # per-call arguments.
    session_proof_header: str = "x-evmauth"

    # --- Upstream (Webacy) settings ---

    webacy_api_key: str = ""
    webacy_api_url: str = "https://api.webacy.com"
    request_timeout: float = 30.0

    model_config = {
        "env_prefix": "MCP_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }

    @field_validator("contract_address")
    @classmethod
    def _check_contract_address(cls, value: str) -> str:
        if not CONTRACT_ADDRESS_PATTERN.match(value):
            raise ValueError(f"not a 20-byte hex address: {value!r}")
        return value

    @field_validator("chain_id")
    @classmethod
    def _check_chain_id(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("chain id must be positive")
        return value


def load_settings(**overrides) -> Settings:
    """
    Build a Settings instance, converting validation failures into StartupError.

    Keyword overrides take precedence over the environment (used by tests and
    by embedding applications).
    """
    try:
        return Settings(**overrides)
    except ValidationError as e:
        raise StartupError(f"Invalid configuration: {e}") from e


# Singleton instance: import this from other modules.
settings = load_settings()
