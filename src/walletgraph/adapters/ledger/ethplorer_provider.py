from __future__ import annotations

from typing import Any, Dict, List

from walletgraph.adapters.ledger.http_base import (
    HttpLedgerProvider,
    missing,
    to_decimal,
    to_int,
)
from walletgraph.config import settings
from walletgraph.core.dto import UNKNOWN_ADDRESS, Transaction, TxInput, TxOutput, WalletInfo
from walletgraph.core.enums import Network, TxStatus
from walletgraph.core.errors import NotFoundError, ProviderError, RateLimitError

# Ethplorer error codes meaning "no such address/tx"
_NOT_FOUND_CODES = {104, 404}
_RATE_LIMIT_CODES = {429}


def normalize_ethplorer_wallet(data: Dict[str, Any], provider: str = "ethplorer") -> WalletInfo:
    eth = data.get("ETH") or {}
    balance = to_decimal(eth.get("balance"))
    rate = (eth.get("price") or {}).get("rate") if isinstance(eth.get("price"), dict) else None

    missing_fields = missing(eth, "totalIn", "totalOut")
    if rate is None:
        missing_fields.append("balance_usd")

    return WalletInfo(
        address=str(data.get("address") or "").lower(),
        network=Network.ETHEREUM,
        balance=balance,
        total_received=to_decimal(eth.get("totalIn")),
        total_sent=to_decimal(eth.get("totalOut")),
        balance_usd=balance * to_decimal(rate) if rate is not None else None,
        transaction_count=to_int(data.get("countTxs")),
        provider=provider,
        missing_fields=tuple(missing_fields),
    )


def normalize_ethplorer_tx(row: Dict[str, Any], provider: str = "ethplorer") -> Transaction:
    # values are already in ETH
    value = to_decimal(row.get("value"))
    success = row.get("success", True)
    return Transaction(
        tx_hash=row.get("hash", ""),
        timestamp=to_int(row.get("timestamp")),
        inputs=(TxInput((row.get("from") or UNKNOWN_ADDRESS).lower(), value),),
        outputs=(TxOutput((row.get("to") or UNKNOWN_ADDRESS).lower(), value),),
        block_number=to_int(row.get("blockNumber")),
        status=TxStatus.CONFIRMED if success else TxStatus.FAILED,
        provider=provider,
        missing_fields=tuple(missing(row, "blockNumber")),
    )


class EthplorerProvider(HttpLedgerProvider):

    name = "ethplorer"

    def __init__(
        self,
        api_key: str = settings.ETHPLORER_API_KEY,
        base_url: str = settings.ETHPLORER_BASE_URL,
        **kwargs,
    ) -> None:
        kwargs.setdefault("requests_per_sec", settings.ETHPLORER_REQUESTS_PER_SEC)
        super().__init__(base_url, **kwargs)
        self._api_key = api_key

    def _check_body(self, data: Any) -> None:
        err = data.get("error") if isinstance(data, dict) else None
        if not isinstance(err, dict):
            return
        code = to_int(err.get("code"))
        message = str(err.get("message", ""))
        if code in _NOT_FOUND_CODES:
            raise NotFoundError(f"{self.name}: {message}")
        if code in _RATE_LIMIT_CODES:
            raise RateLimitError(message, provider=self.name)
        raise ProviderError(f"Ethplorer error {code}: {message}", provider=self.name)

    # ---------- port methods ----------

    def get_wallet(self, address: str) -> WalletInfo:
        data = self._call(f"getAddressInfo/{address.lower()}", {"apiKey": self._api_key})
        if not isinstance(data, dict):
            raise ProviderError(f"Invalid Ethplorer response: {data}", provider=self.name)
        data.setdefault("address", address.lower())
        return normalize_ethplorer_wallet(data, self.name)

    def get_transactions(self, address: str, limit: int) -> List[Transaction]:
        rows = self._call(
            f"getAddressTransactions/{address.lower()}",
            {"apiKey": self._api_key, "limit": int(limit)},
        )
        if not isinstance(rows, list):
            return []
        return [normalize_ethplorer_tx(r, self.name) for r in rows][:limit]

    def get_transaction(self, tx_hash: str) -> Transaction:
        data = self._call(f"getTxInfo/{tx_hash}", {"apiKey": self._api_key})
        if not isinstance(data, dict) or not data.get("hash"):
            raise NotFoundError(f"{self.name}: transaction {tx_hash} not found")
        return normalize_ethplorer_tx(data, self.name)
