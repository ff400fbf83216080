"""Shared pytest fixtures."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from directory import ServiceRecord

V3_ADDRESS = "thehiddenwiki7oyvfj3r2mjbgqfbwfb5kpjfxqtbxhwvlj2xjgpqohd.onion"
DDG_ADDRESS = "duckduckgogg42xjoc72x3sjasowoarfbgcmvfimaftt6twagswzczad.onion"


@pytest.fixture
def services() -> list[ServiceRecord]:
    """A small snapshot covering every status family."""
    checked = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
    return [
        ServiceRecord(
            title="Etherscan Mirror",
            name="etherscan-mirror",
            onion_address=f"http://{V3_ADDRESS}",
            status="online",
            last_checked=checked,
            category="Explorer",
            description="Block explorer for Ethereum",
            tags=("explorer", "mainnet"),
        ),
        ServiceRecord(
            title="Blockscout",
            name="blockscout",
            onion_address=f"http://{DDG_ADDRESS}",
            status="offline",
            prev_status="online",
            last_checked=checked,
            category="Explorer",
        ),
        ServiceRecord(
            title="Relay Node",
            name="relay-node",
            onion_address=f"http://{V3_ADDRESS}",
            status="error-502",
            last_checked=checked,
            description="RPC endpoint",
            tags=("rpc",),
        ),
        ServiceRecord(
            title="Wallet Docs",
            name="wallet-docs",
            onion_address=f"http://{DDG_ADDRESS}",
            status="unknown",
            description="",
            tags=("Docs", "wallet"),
        ),
        ServiceRecord(
            title="Archive",
            name="archive",
            onion_address=f"http://{V3_ADDRESS}",
            status="online",
        ),
    ]
