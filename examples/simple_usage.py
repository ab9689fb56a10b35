#!/usr/bin/env python3
"""
Simple example of using the Hyperfill SDK.
"""
import asyncio
import json
import logging
import os

from hyperfill_sdk import HyperfillClient, StubWalletProvider


async def main():
    """
    Demonstrate basic usage of the HyperfillClient.

    This example shows how to:
    1. Create a client for a configured network
    2. Connect a wallet session
    3. Mint test tokens, deposit them and place an order
    """
    network = os.environ.get("HYPERFILL_NETWORK", "local")
    wallet = StubWalletProvider(address=os.environ.get("ACCOUNT_ADDRESS", "0x" + "1" * 64))

    async with HyperfillClient.from_network(network, providers=[wallet]) as client:
        session = await client.connect(wallet.provider_id)
        print(f"Connected {session.provider_id} wallet: {session.address}")

        faucet = await client.request_faucet_tokens("100")
        print("Faucet:", json.dumps(faucet.to_dict(), indent=2))

        deposit = await client.deposit("50")
        if deposit.success:
            print(f"Deposit confirmed: {client.tx_url(deposit.transaction_hash)}")
        else:
            print(f"Deposit failed ({deposit.error}): {deposit.message}")

        order = await client.place_order("bid", "12.34", "7", restriction="post_only")
        print("Order:", order.to_dict())

        snapshot = await client.refresh_snapshot()
        if snapshot is not None:
            print("Vault:", json.dumps(snapshot.display(), indent=2))
            if not snapshot.is_complete:
                print(f"Defaulted fields: {sorted(snapshot.defaulted_fields)}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
