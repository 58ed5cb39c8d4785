"""
CLI utility to mint EVMAuth proofs for the local token authority.

In production, proofs are signed by the caller's wallet and holdings are
checked on-chain. With the local TokenAuthority, this script plays the role of
the chain: it signs a statement of which token ids a wallet holds, and the
server accepts it if the signature matches MCP_PROOF_SECRET_KEY.

Usage examples:

    # Basic tier (token 1)
    python -m scripts.generate_proof --address 0xAbC... --tokens 1

    # Basic + Premium + Pro
    python -m scripts.generate_proof --address 0xAbC... --tokens 1 3 5

    # Expired proof (for testing rejection)
    python -m scripts.generate_proof --address 0xAbC... --tokens 1 --exp-hours -1

The printed proof goes into the `__evmauth` argument of a protected tool, or
into the X-EVMAuth header for a whole HTTP session.
"""

import argparse
import datetime
import json

import jwt

DEFAULT_CONTRACT = "0x5448Dc20ad9e0cDb5Dd0db25e814545d1aa08D96"
DEFAULT_CHAIN_ID = 1223953


def generate_proof(
    address: str,
    tokens: list[int],
    secret: str,
    contract: str = DEFAULT_CONTRACT,
    chain_id: int = DEFAULT_CHAIN_ID,
    algorithm: str = "HS256",
    exp_hours: float = 1.0,
) -> dict:
    """
    Build a signed proof for `address` holding `tokens`.

    Args:
        address: Wallet address the proof is for
        tokens: EVMAuth token ids held by the wallet
        secret: Signing key (must match the server's MCP_PROOF_SECRET_KEY)
        contract: Token contract address (must match MCP_CONTRACT_ADDRESS)
        chain_id: Chain id (must match MCP_CHAIN_ID)
        algorithm: JWT signing algorithm
        exp_hours: Hours until expiration (negative = already expired)

    Returns:
        The proof object: {"address": ..., "signature": <jwt>}
    """
    now = datetime.datetime.now(datetime.timezone.utc)
    claims = {
        "sub": address,
        "tokens": tokens,
        "contract": contract,
        "chain_id": chain_id,
        "iat": now,
        "exp": now + datetime.timedelta(hours=exp_hours),
    }
    return {
        "address": address,
        "signature": jwt.encode(claims, secret, algorithm=algorithm),
    }


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Mint EVMAuth proofs for the Webacy MCP server.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Basic tier:
    %(prog)s --address 0xAbC... --tokens 1

  All tiers:
    %(prog)s --address 0xAbC... --tokens 1 3 5

  Expired proof (for testing):
    %(prog)s --address 0xAbC... --tokens 1 --exp-hours -1
        """,
    )

    parser.add_argument("--address", required=True, help="Wallet address holding the tokens")
    parser.add_argument(
        "--tokens",
        nargs="+",
        type=int,
        default=[],
        help="Space-separated EVMAuth token ids held (e.g., 1 3 5)",
    )
    parser.add_argument(
        "--secret",
        default="dev-secret-change-me",
        help="Signing secret (must match server's MCP_PROOF_SECRET_KEY)",
    )
    parser.add_argument("--contract", default=DEFAULT_CONTRACT, help="Token contract address")
    parser.add_argument("--chain-id", type=int, default=DEFAULT_CHAIN_ID, help="Chain id")
    parser.add_argument(
        "--exp-hours",
        type=float,
        default=1.0,
        help="Hours until the proof expires (negative = already expired, default: 1)",
    )

    args = parser.parse_args()

    proof = generate_proof(
        address=args.address,
        tokens=args.tokens,
        secret=args.secret,
        contract=args.contract,
        chain_id=args.chain_id,
        exp_hours=args.exp_hours,
    )
    proof_json = json.dumps(proof)

    print(f"Address:    {args.address}")
    print(f"Tokens:     {args.tokens}")
    print(f"Contract:   {args.contract} (chain {args.chain_id})")
    print()
    print(f"Proof: {proof_json}")
    print()
    print("Usage as tool argument:")
    print(f'  {{"__evmauth": {proof_json}}}')
    print()
    print("Usage as session header (HTTP transport):")
    print(f"  X-EVMAuth: {proof_json}")


if __name__ == "__main__":
    main()
