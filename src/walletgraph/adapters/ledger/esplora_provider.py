from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, List

import structlog

from walletgraph.adapters.ledger.http_base import (
    HttpLedgerProvider,
    minor_to_base,
    missing,
    to_int,
)
from walletgraph.config import settings
from walletgraph.core.dto import UNKNOWN_ADDRESS, Transaction, TxInput, TxOutput, WalletInfo
from walletgraph.core.enums import Network, TxStatus
from walletgraph.core.errors import NotFoundError, ProviderError

logger = structlog.get_logger(__name__)

# Esplora returns at most 25 confirmed txs per page
ESPLORA_PAGE_SIZE = 25


def normalize_esplora_tx(tx: Dict[str, Any], decimals: int = 8, provider: str = "esplora") -> Transaction:
    status = tx.get("status") or {}
    confirmed = bool(status.get("confirmed"))

    inputs = []
    for i in tx.get("vin") or []:
        prev = i.get("prevout") or {}
        inputs.append(TxInput(
            address=prev.get("scriptpubkey_address") or UNKNOWN_ADDRESS,
            value=minor_to_base(prev.get("value"), decimals),
        ))

    outputs = []
    for o in tx.get("vout") or []:
        outputs.append(TxOutput(
            address=o.get("scriptpubkey_address") or UNKNOWN_ADDRESS,
            value=minor_to_base(o.get("value"), decimals),
        ))

    return Transaction(
        tx_hash=tx.get("txid", ""),
        timestamp=to_int(status.get("block_time")),
        inputs=tuple(inputs),
        outputs=tuple(outputs),
        block_number=to_int(status.get("block_height")),
        block_hash=status.get("block_hash") or "",
        fee=minor_to_base(tx.get("fee"), decimals),
        status=TxStatus.CONFIRMED if confirmed else TxStatus.PENDING,
        provider=provider,
        missing_fields=tuple(missing(tx, "fee")),
    )


def normalize_esplora_wallet(
    address: str,
    data: Dict[str, Any],
    network: Network,
    decimals: int = 8,
    provider: str = "esplora",
) -> WalletInfo:
    chain = data.get("chain_stats") or {}
    mempool = data.get("mempool_stats") or {}

    funded = to_int(chain.get("funded_txo_sum")) + to_int(mempool.get("funded_txo_sum"))
    spent = to_int(chain.get("spent_txo_sum")) + to_int(mempool.get("spent_txo_sum"))

    return WalletInfo(
        address=address,
        network=network,
        balance=minor_to_base(funded - spent, decimals),
        total_received=minor_to_base(funded, decimals),
        total_sent=minor_to_base(spent, decimals),
        transaction_count=to_int(chain.get("tx_count")) + to_int(mempool.get("tx_count")),
        provider=provider,
        missing_fields=tuple(missing(data, "chain_stats")),
    )


class EsploraProvider(HttpLedgerProvider):
    """
    Blockstream-compatible explorer API (blockstream.info, litecoinspace.org).
    """

    def __init__(
        self,
        network: Network,
        base_url: str,
        name: str,
        decimals: int = 8,
        **kwargs,
    ) -> None:
        kwargs.setdefault("requests_per_sec", settings.BLOCKSTREAM_REQUESTS_PER_SEC)
        super().__init__(base_url, **kwargs)
        self.name = name
        self._network = network
        self._decimals = decimals

    @classmethod
    def blockstream(cls, **kwargs) -> "EsploraProvider":
        return cls(Network.BITCOIN, settings.BLOCKSTREAM_BASE_URL, "blockstream", **kwargs)

    @classmethod
    def litecoinspace(cls, **kwargs) -> "EsploraProvider":
        kwargs.setdefault("requests_per_sec", settings.LITECOINSPACE_REQUESTS_PER_SEC)
        return cls(Network.LITECOIN, settings.LITECOINSPACE_BASE_URL, "litecoinspace", **kwargs)

    # ---------- port methods ----------

    def get_wallet(self, address: str) -> WalletInfo:
        data = self._call(f"address/{address}")
        if not isinstance(data, dict):
            raise NotFoundError(f"{self.name}: unexpected address payload")
        wallet = normalize_esplora_wallet(address, data, self._network, self._decimals, self.name)

        # last_seen from the newest page; cheap and usually all we need
        if wallet.transaction_count:
            try:
                recent = self.get_transactions(address, 1)
            except ProviderError as e:
                logger.info("last_seen_unavailable", provider=self.name, address=address, error=str(e))
                return replace(wallet, missing_fields=wallet.missing_fields + ("last_seen",))
            if recent and recent[0].timestamp:
                wallet = replace(wallet, last_seen=recent[0].timestamp)
        return wallet

    def get_transactions(self, address: str, limit: int) -> List[Transaction]:
        out: List[Transaction] = []
        rows = self._call(f"address/{address}/txs")
        while isinstance(rows, list) and rows:
            out.extend(normalize_esplora_tx(r, self._decimals, self.name) for r in rows)
            if len(out) >= limit or len(rows) < ESPLORA_PAGE_SIZE:
                break
            last_txid = rows[-1].get("txid")
            rows = self._call(f"address/{address}/txs/chain/{last_txid}")
        return out[:limit]

    def get_transaction(self, tx_hash: str) -> Transaction:
        data = self._call(f"tx/{tx_hash}")
        if not isinstance(data, dict) or not data.get("txid"):
            raise NotFoundError(f"{self.name}: transaction {tx_hash} not found")
        return normalize_esplora_tx(data, self._decimals, self.name)
