from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

from walletgraph.core.dto import Transaction, WalletInfo


class LedgerProviderPort(ABC):
    """
    Abstract Class for one ledger-explorer API on one network.

    Implementations raise NotFoundError when the explorer does not know the
    address/hash and ProviderError (or RateLimitError) on any other failure.
    Returned records are already normalized to the canonical shape.
    """

    name: str = "provider"

    # --- Address facts ---

    @abstractmethod
    def get_wallet(self, address: str) -> WalletInfo:
        raise NotImplementedError

    # --- Address history, newest first ---

    @abstractmethod
    def get_transactions(self, address: str, limit: int) -> List[Transaction]:
        raise NotImplementedError

    # --- Single transaction ---

    @abstractmethod
    def get_transaction(self, tx_hash: str) -> Transaction:
        raise NotImplementedError
