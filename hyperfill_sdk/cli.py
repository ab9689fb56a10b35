"""
Command line interface for read-only Hyperfill queries.
"""
import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from .config import NetworkConfig, ProtocolConfig
from .exceptions import HyperfillError
from .ledger.gateway import LedgerGateway
from .vault import VaultReader

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="hyperfill", description="Hyperfill vault and order book queries")
    parser.add_argument(
        "--network",
        help="Network name (default: HYPERFILL_NETWORK or aptos-testnet)"
    )
    parser.add_argument(
        "--node-url",
        help="Override the full node URL"
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print machine-readable JSON"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("networks", help="List configured networks")

    snapshot = subparsers.add_parser("snapshot", help="Show vault state for an account")
    snapshot.add_argument("--account", required=True, help="Account address")

    depth = subparsers.add_parser("depth", help="Show order book depth")
    depth.add_argument("--levels", type=int, default=10, help="Number of price levels per side")
    return parser


def _reader(args) -> VaultReader:
    network = args.network or NetworkConfig.default_network()
    gateway = LedgerGateway(NetworkConfig.get_node_url(network, override=args.node_url))
    return VaultReader(gateway, ProtocolConfig.from_network(network))


async def _snapshot(args) -> dict:
    reader = _reader(args)
    try:
        snapshot = await reader.fetch_snapshot(args.account)
    finally:
        reader.gateway.close()
    data = snapshot.display()
    data["defaulted"] = sorted(snapshot.defaulted_fields)
    return data


async def _depth(args) -> dict:
    reader = _reader(args)
    try:
        depth = await reader.fetch_order_book_depth(args.levels)
    finally:
        reader.gateway.close()
    return {
        "bids": [{"price": str(level.price), "size": level.size} for level in depth.bids],
        "asks": [{"price": str(level.price), "size": level.size} for level in depth.asks],
    }


def _print(data, as_json: bool) -> None:
    if as_json:
        print(json.dumps(data, indent=2, sort_keys=True))
        return
    if isinstance(data, dict) and ("bids" in data and "asks" in data):
        for side in ("asks", "bids"):
            print(f"{side}:")
            for level in data[side]:
                print(f"  {level['price']:>12}  {level['size']}")
        return
    for key, value in data.items():
        print(f"{key}: {value}")


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point of the ``hyperfill`` console script."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    try:
        if args.command == "networks":
            networks = NetworkConfig.load_networks()
            data = {name: cfg.get("nodeUrl") for name, cfg in sorted(networks.items())}
        elif args.command == "snapshot":
            data = asyncio.run(_snapshot(args))
        else:
            data = asyncio.run(_depth(args))
    except (HyperfillError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    _print(data, args.json)
    return 0


if __name__ == "__main__":
    sys.exit(main())
