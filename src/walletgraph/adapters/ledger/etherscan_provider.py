from typing import Any, Dict, List, Optional

from walletgraph.adapters.ledger.http_base import (
    HttpLedgerProvider,
    minor_to_base,
    to_int,
)
from walletgraph.config import settings
from walletgraph.core.dto import UNKNOWN_ADDRESS, Transaction, TxInput, TxOutput, WalletInfo
from walletgraph.core.enums import Network, TxStatus
from walletgraph.core.errors import NotFoundError, ProviderError, RateLimitError

WEI_DECIMALS = 18


def _hex_int(val: Any) -> int:
    if isinstance(val, str) and val.startswith("0x"):
        try:
            return int(val, 16)
        except ValueError:
            return 0
    return to_int(val)


def normalize_etherscan_tx(row: Dict[str, Any], provider: str = "etherscan") -> Transaction:
    """One row of account/txlist."""
    value = minor_to_base(row.get("value"), WEI_DECIMALS)
    fee_wei = to_int(row.get("gasUsed")) * to_int(row.get("gasPrice"))
    failed = str(row.get("isError", "0")) == "1"
    return Transaction(
        tx_hash=row.get("hash", ""),
        timestamp=to_int(row.get("timeStamp")),
        inputs=(TxInput((row.get("from") or UNKNOWN_ADDRESS).lower(), value),),
        outputs=(TxOutput((row.get("to") or UNKNOWN_ADDRESS).lower(), value),),
        block_number=to_int(row.get("blockNumber")),
        block_hash=row.get("blockHash") or "",
        fee=minor_to_base(fee_wei, WEI_DECIMALS),
        status=TxStatus.FAILED if failed else TxStatus.CONFIRMED,
        provider=provider,
    )


def normalize_etherscan_rpc_tx(
    tx: Dict[str, Any],
    receipt: Optional[Dict[str, Any]],
    block_ts: Optional[int],
    provider: str = "etherscan",
) -> Transaction:
    """eth_getTransactionByHash + receipt + block timestamp."""
    value = minor_to_base(_hex_int(tx.get("value")), WEI_DECIMALS)
    block_number = _hex_int(tx.get("blockNumber")) if tx.get("blockNumber") else 0

    missing_fields = []
    if receipt is None:
        status = TxStatus.PENDING if not block_number else TxStatus.CONFIRMED
        fee_wei = 0
        missing_fields.append("fee")
    else:
        status = TxStatus.CONFIRMED if _hex_int(receipt.get("status")) == 1 else TxStatus.FAILED
        price = receipt.get("effectiveGasPrice") or tx.get("gasPrice")
        fee_wei = _hex_int(receipt.get("gasUsed")) * _hex_int(price)
    if block_ts is None:
        missing_fields.append("timestamp")

    return Transaction(
        tx_hash=tx.get("hash", ""),
        timestamp=block_ts or 0,
        inputs=(TxInput((tx.get("from") or UNKNOWN_ADDRESS).lower(), value),),
        outputs=(TxOutput((tx.get("to") or UNKNOWN_ADDRESS).lower(), value),),
        block_number=block_number,
        block_hash=tx.get("blockHash") or "",
        fee=minor_to_base(fee_wei, WEI_DECIMALS),
        status=status,
        provider=provider,
        missing_fields=tuple(missing_fields),
    )


class EtherscanProvider(HttpLedgerProvider):

    name = "etherscan"

    def __init__(
        self,
        api_key: Optional[str] = settings.ETHERSCAN_API_KEY,
        chain_id: int = settings.ETHERSCAN_CHAIN_ID,
        base_url: str = settings.ETHERSCAN_BASE_URL,
        **kwargs,
    ) -> None:
        kwargs.setdefault("requests_per_sec", settings.ETHERSCAN_REQUESTS_PER_SEC)
        super().__init__(base_url, **kwargs)
        self._api_key = api_key
        self._chainid = chain_id

    # ---------- internal ----------

    def _api(self, params: Dict[str, Any]) -> Dict[str, Any]:
        req = dict(params)
        req["apikey"] = self._api_key
        req["chainid"] = str(self._chainid)
        return self._call("", req)

    def _check_body(self, data: Any) -> None:
        if not isinstance(data, dict):
            raise ProviderError(f"Invalid Etherscan response: {data}", provider=self.name)

        status = str(data.get("status", "1"))
        message = str(data.get("message", "OK"))
        result = data.get("result")

        if isinstance(result, str) and "rate limit" in result.lower():
            raise RateLimitError(result, provider=self.name)
        if isinstance(data.get("error"), dict):
            raise ProviderError(f"Etherscan RPC error: {data['error']}", provider=self.name)
        if status == "0":
            if "rate" in message.lower():
                raise RateLimitError(message, provider=self.name)
            if "no transactions found" in message.lower():
                return
            raise ProviderError(f"Etherscan error: {message} {result}", provider=self.name)

    @staticmethod
    def _list_result(data: Dict[str, Any]) -> list:
        res = data.get("result")
        return res if isinstance(res, list) else []

    # ---------- port methods ----------

    def get_wallet(self, address: str) -> WalletInfo:
        addr = address.lower()
        data = self._api({
            "module": "account",
            "action": "balance",
            "address": addr,
            "tag": "latest",
        })
        nonce = self._api({
            "module": "proxy",
            "action": "eth_getTransactionCount",
            "address": addr,
            "tag": "latest",
        })
        # Etherscan exposes no lifetime in/out sums
        return WalletInfo(
            address=addr,
            network=Network.ETHEREUM,
            balance=minor_to_base(data.get("result"), WEI_DECIMALS),
            transaction_count=_hex_int(nonce.get("result")),
            provider=self.name,
            missing_fields=("total_received", "total_sent"),
        )

    def get_transactions(self, address: str, limit: int) -> List[Transaction]:
        data = self._api({
            "module": "account",
            "action": "txlist",
            "address": address.lower(),
            "startblock": 0,
            "endblock": 99999999,
            "page": 1,
            "offset": int(limit),
            "sort": "desc",
        })
        return [normalize_etherscan_tx(r, self.name) for r in self._list_result(data)][:limit]

    def get_transaction(self, tx_hash: str) -> Transaction:
        data = self._api({
            "module": "proxy",
            "action": "eth_getTransactionByHash",
            "txhash": tx_hash,
        })
        tx = data.get("result")
        if not isinstance(tx, dict):
            raise NotFoundError(f"{self.name}: transaction {tx_hash} not found")

        receipt = None
        block_ts = None
        if tx.get("blockNumber"):
            r = self._api({
                "module": "proxy",
                "action": "eth_getTransactionReceipt",
                "txhash": tx_hash,
            })
            receipt = r.get("result") if isinstance(r.get("result"), dict) else None

            block = self._api({
                "module": "proxy",
                "action": "eth_getBlockByNumber",
                "tag": tx["blockNumber"],
                "boolean": "false",
            })
            if isinstance(block.get("result"), dict):
                block_ts = _hex_int(block["result"].get("timestamp"))

        return normalize_etherscan_rpc_tx(tx, receipt, block_ts, self.name)
