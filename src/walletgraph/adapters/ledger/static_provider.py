import json
from collections import Counter
from decimal import Decimal
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from walletgraph.core.dto import Transaction, TxInput, TxOutput, WalletInfo
from walletgraph.core.enums import Network
from walletgraph.core.errors import NotFoundError, ProviderError
from walletgraph.ports.ledger_provider_port import LedgerProviderPort


class StaticLedgerProvider(LedgerProviderPort):
    def __init__(self,
                 wallets: Optional[Dict[str, WalletInfo]] = None,
                 transactions: Optional[List[Transaction]] = None,
                 failing: Optional[Iterable[str]] = None,
                 name: str = "static",
                 ):
        self.name = name
        self._wallets = dict(wallets or {})
        self._txs = list(transactions or [])
        self._failing = set(failing or [])
        self.calls: Counter = Counter()

    @classmethod
    def from_fixture(cls, path: str) -> "StaticLedgerProvider":
        """
        Load {"network": ..., "wallets": {addr: {...}}, "transactions": [...]}.
        Transaction inputs/outputs are [address, value] pairs.
        """
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        network = Network(raw.get("network", "bitcoin"))

        wallets = {}
        for addr, w in (raw.get("wallets") or {}).items():
            wallets[addr] = WalletInfo(
                address=addr,
                network=network,
                balance=Decimal(str(w.get("balance", "0"))),
                total_received=Decimal(str(w.get("total_received", "0"))),
                total_sent=Decimal(str(w.get("total_sent", "0"))),
                transaction_count=int(w.get("transaction_count", 0)),
                first_seen=w.get("first_seen"),
                last_seen=w.get("last_seen"),
                provider="static",
            )

        txs = []
        for t in raw.get("transactions") or []:
            txs.append(Transaction(
                tx_hash=t["hash"],
                timestamp=int(t.get("timestamp", 0)),
                inputs=tuple(TxInput(a, Decimal(str(v))) for a, v in t.get("inputs", [])),
                outputs=tuple(TxOutput(a, Decimal(str(v))) for a, v in t.get("outputs", [])),
                block_number=int(t.get("block_number", 0)),
                provider="static",
            ))
        return cls(wallets=wallets, transactions=txs)

    def _check(self, key: str) -> None:
        if key in self._failing:
            raise ProviderError(f"{self.name}: simulated failure for {key}", provider=self.name)

    def get_wallet(self, address):
        self.calls[("wallet", address)] += 1
        self._check(address)
        if address not in self._wallets:
            raise NotFoundError(f"{self.name}: {address} not found")
        return self._wallets[address]

    def get_transactions(self, address, limit):
        self.calls[("txs", address)] += 1
        self._check(address)
        if address not in self._wallets:
            raise NotFoundError(f"{self.name}: {address} not found")
        items = [
            t for t in self._txs
            if any(i.address == address for i in t.inputs)
            or any(o.address == address for o in t.outputs)
        ]
        items.sort(key=lambda x: (x.timestamp, x.block_number), reverse=True)
        return items[:limit]

    def get_transaction(self, tx_hash):
        self.calls[("tx", tx_hash)] += 1
        self._check(tx_hash)
        for t in self._txs:
            if t.tx_hash == tx_hash:
                return t
        raise NotFoundError(f"{self.name}: transaction {tx_hash} not found")
