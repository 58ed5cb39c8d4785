"""
Tool access tiers.

Every tool requires exactly one EVMAuth token id to be called. The token ids
double as tier identifiers:

    FREE    = 0   no token, never gated
    BASIC   = 1
    PREMIUM = 3
    PRO     = 5

The mapping below is the only place tiers are assigned. The server resolves
the tier of every registered tool at startup, so a tool without an entry here
fails fast instead of being served ungated.
"""

from enum import IntEnum


class Tier(IntEnum):
    FREE = 0
    BASIC = 1
    PREMIUM = 3
    PRO = 5


class UnknownToolError(KeyError):
    """Raised when a tool name has no tier assignment."""


TOOL_TIER_MAP: dict[str, Tier] = {
    "ping": Tier.FREE,
    "checkAddressThreat": Tier.BASIC,
    "checkSanctionStatus": Tier.BASIC,
    "analyzeContract": Tier.PREMIUM,
    "analyzeTransaction": Tier.PREMIUM,
    "analyzeUrl": Tier.PRO,
}


def required_tier(tool_name: str) -> Tier:
    try:
        return TOOL_TIER_MAP[tool_name]
    except KeyError:
        raise UnknownToolError(tool_name) from None


def tools_for_tier(tier: Tier) -> list[str]:
    """Names of the tools assigned to `tier`, in registration order."""
    return [name for name, assigned in TOOL_TIER_MAP.items() if assigned == tier]
