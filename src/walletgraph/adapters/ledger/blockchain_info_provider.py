from __future__ import annotations

from typing import Any, Dict, List, Optional

from walletgraph.adapters.ledger.http_base import (
    HttpLedgerProvider,
    minor_to_base,
    missing,
    to_int,
)
from walletgraph.config import settings
from walletgraph.core.dto import UNKNOWN_ADDRESS, Transaction, TxInput, TxOutput, WalletInfo
from walletgraph.core.enums import Network, TxStatus
from walletgraph.core.errors import NotFoundError

SATS_DECIMALS = 8


def normalize_blockchain_info_tx(tx: Dict[str, Any], provider: str = "blockchain.info") -> Transaction:
    inputs = []
    for i in tx.get("inputs") or []:
        prev = i.get("prev_out") or {}
        inputs.append(TxInput(
            address=prev.get("addr") or UNKNOWN_ADDRESS,
            value=minor_to_base(prev.get("value"), SATS_DECIMALS),
        ))

    outputs = []
    for o in tx.get("out") or []:
        outputs.append(TxOutput(
            address=o.get("addr") or UNKNOWN_ADDRESS,
            value=minor_to_base(o.get("value"), SATS_DECIMALS),
            spent=bool(o.get("spent", False)),
        ))

    height = tx.get("block_height")
    return Transaction(
        tx_hash=tx.get("hash", ""),
        timestamp=to_int(tx.get("time")),
        inputs=tuple(inputs),
        outputs=tuple(outputs),
        block_number=to_int(height),
        block_hash=tx.get("block_hash") or "",
        fee=minor_to_base(tx.get("fee"), SATS_DECIMALS),
        status=TxStatus.CONFIRMED if height else TxStatus.PENDING,
        provider=provider,
        missing_fields=tuple(missing(tx, "fee", "time")),
    )


def normalize_blockchain_info_wallet(
    address: str,
    data: Dict[str, Any],
    provider: str = "blockchain.info",
) -> WalletInfo:
    txs = data.get("txs") or []
    times = [to_int(t.get("time")) for t in txs if t.get("time")]
    return WalletInfo(
        address=address,
        network=Network.BITCOIN,
        balance=minor_to_base(data.get("final_balance"), SATS_DECIMALS),
        total_received=minor_to_base(data.get("total_received"), SATS_DECIMALS),
        total_sent=minor_to_base(data.get("total_sent"), SATS_DECIMALS),
        transaction_count=to_int(data.get("n_tx")),
        # the oldest tx is only known when the whole history came back
        first_seen=min(times) if times and len(txs) >= to_int(data.get("n_tx")) else None,
        last_seen=max(times) if times else None,
        provider=provider,
        missing_fields=tuple(missing(data, "final_balance", "total_received", "total_sent", "n_tx")),
    )


class BlockchainInfoProvider(HttpLedgerProvider):

    name = "blockchain.info"

    def __init__(self, base_url: str = settings.BLOCKCHAIN_INFO_BASE_URL, **kwargs) -> None:
        kwargs.setdefault("requests_per_sec", settings.BLOCKCHAIN_INFO_REQUESTS_PER_SEC)
        super().__init__(base_url, **kwargs)

    def _rawaddr(self, address: str, limit: int) -> Dict[str, Any]:
        data = self._call(f"rawaddr/{address}", {"limit": int(limit)})
        if not isinstance(data, dict):
            raise NotFoundError(f"{self.name}: unexpected address payload")
        return data

    # ---------- port methods ----------

    def get_wallet(self, address: str) -> WalletInfo:
        # one tx is enough to learn last_seen; first_seen needs the full history
        return normalize_blockchain_info_wallet(address, self._rawaddr(address, 1), self.name)

    def get_transactions(self, address: str, limit: int) -> List[Transaction]:
        data = self._rawaddr(address, limit)
        return [normalize_blockchain_info_tx(t, self.name) for t in (data.get("txs") or [])][:limit]

    def get_transaction(self, tx_hash: str) -> Transaction:
        data: Optional[Dict[str, Any]] = self._call(f"rawtx/{tx_hash}")
        if not isinstance(data, dict) or not data.get("hash"):
            raise NotFoundError(f"{self.name}: transaction {tx_hash} not found")
        return normalize_blockchain_info_tx(data, self.name)
