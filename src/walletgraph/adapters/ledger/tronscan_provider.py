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

SUN_DECIMALS = 6


def _ms_to_s(val: Any) -> Optional[int]:
    ms = to_int(val)
    return ms // 1000 if ms else None


def normalize_tronscan_wallet(address: str, data: Dict[str, Any], provider: str = "tronscan") -> WalletInfo:
    return WalletInfo(
        address=address,
        network=Network.TRON,
        balance=minor_to_base(data.get("balance"), SUN_DECIMALS),
        transaction_count=to_int(data.get("totalTransactionCount")),
        first_seen=_ms_to_s(data.get("date_created")),
        last_seen=_ms_to_s(data.get("latest_operation_time")),
        provider=provider,
        # accountv2 has no lifetime in/out sums
        missing_fields=("total_received", "total_sent") + tuple(missing(data, "totalTransactionCount")),
    )


def normalize_tronscan_tx(row: Dict[str, Any], provider: str = "tronscan") -> Transaction:
    contract = row.get("contractData") or {}
    sender = row.get("ownerAddress") or contract.get("owner_address") or UNKNOWN_ADDRESS
    receiver = row.get("toAddress") or contract.get("to_address") or UNKNOWN_ADDRESS
    amount = row.get("amount", contract.get("amount"))
    value = minor_to_base(amount, SUN_DECIMALS)

    ret = str(row.get("contractRet") or "SUCCESS").upper()
    if ret != "SUCCESS":
        status = TxStatus.FAILED
    elif row.get("confirmed", True):
        status = TxStatus.CONFIRMED
    else:
        status = TxStatus.PENDING

    cost = row.get("cost") or {}
    fee = cost.get("fee", to_int(cost.get("net_fee")) + to_int(cost.get("energy_fee")))

    return Transaction(
        tx_hash=row.get("hash", ""),
        timestamp=_ms_to_s(row.get("timestamp")) or 0,
        inputs=(TxInput(sender, value),),
        outputs=(TxOutput(receiver, value),),
        block_number=to_int(row.get("block")),
        fee=minor_to_base(fee, SUN_DECIMALS),
        status=status,
        provider=provider,
        missing_fields=tuple(["amount"] if amount is None else []),
    )


class TronscanProvider(HttpLedgerProvider):

    name = "tronscan"

    def __init__(
        self,
        api_key: Optional[str] = settings.TRONSCAN_API_KEY,
        base_url: str = settings.TRONSCAN_BASE_URL,
        **kwargs,
    ) -> None:
        kwargs.setdefault("requests_per_sec", settings.TRONSCAN_REQUESTS_PER_SEC)
        super().__init__(base_url, **kwargs)
        if api_key:
            self._session.headers["TRON-PRO-API-KEY"] = api_key

    # ---------- port methods ----------

    def get_wallet(self, address: str) -> WalletInfo:
        data = self._call("accountv2", {"address": address})
        # unknown accounts come back as an empty object
        if not isinstance(data, dict) or "balance" not in data:
            raise NotFoundError(f"{self.name}: account {address} not found")
        return normalize_tronscan_wallet(address, data, self.name)

    def get_transactions(self, address: str, limit: int) -> List[Transaction]:
        data = self._call("transaction", {
            "address": address,
            "limit": int(limit),
            "start": 0,
            "sort": "-timestamp",
        })
        rows = data.get("data") if isinstance(data, dict) else None
        if not isinstance(rows, list):
            return []
        return [normalize_tronscan_tx(r, self.name) for r in rows][:limit]

    def get_transaction(self, tx_hash: str) -> Transaction:
        data = self._call("transaction-info", {"hash": tx_hash})
        if not isinstance(data, dict) or not data.get("hash"):
            raise NotFoundError(f"{self.name}: transaction {tx_hash} not found")
        return normalize_tronscan_tx(data, self.name)
