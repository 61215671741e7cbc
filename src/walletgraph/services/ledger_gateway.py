from __future__ import annotations

from typing import Callable, Dict, List, Optional, Sequence, TypeVar

import structlog

from walletgraph.config import settings
from walletgraph.core.dto import Transaction, WalletInfo
from walletgraph.core.enums import Network, TxStatus
from walletgraph.core.errors import NotFoundError, PartialDataError, ProviderError, ValidationError
from walletgraph.ports.ledger_provider_port import LedgerProviderPort
from walletgraph.services.response_cache import ResponseCache

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class LedgerGateway:
    """
    Fetches canonical wallet/transaction records for a network.

    Providers are tried in priority order; a "not found" does not stop the
    chain since explorers index differently. Results are cached before they
    are returned, and the cache is consulted before any provider is called.
    """

    def __init__(
        self,
        providers: Dict[Network, Sequence[LedgerProviderPort]],
        cache: Optional[ResponseCache] = None,
        wallet_ttl: float = settings.CACHE_TTL_WALLET_INFO,
        transactions_ttl: float = settings.CACHE_TTL_TRANSACTIONS,
        confirmed_tx_ttl: float = settings.CACHE_TTL_CONFIRMED_TX,
        unconfirmed_tx_ttl: float = settings.CACHE_TTL_UNCONFIRMED_TX,
    ) -> None:
        self._providers = {n: list(p) for n, p in providers.items()}
        self.cache = cache if cache is not None else ResponseCache()
        self._wallet_ttl = wallet_ttl
        self._transactions_ttl = transactions_ttl
        self._confirmed_tx_ttl = confirmed_tx_ttl
        self._unconfirmed_tx_ttl = unconfirmed_tx_ttl

    def providers_for(self, network: Network) -> List[LedgerProviderPort]:
        chain = self._providers.get(network)
        if not chain:
            raise ValidationError(f"Unsupported network: {network.value}")
        return chain

    # ---------- operations ----------

    def fetch_wallet_info(self, address: str, network: Network) -> WalletInfo:
        key = f"wallet_info:{network.value}:{address}"
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("cache_hit", key=key)
            return cached

        wallet = self._with_fallback(
            network, "wallet_info", address, lambda p: p.get_wallet(address)
        )
        self._report_partial(wallet.provider, wallet.missing_fields, address)
        self.cache.put(key, wallet, self._wallet_ttl)
        return wallet

    def fetch_transactions(self, address: str, network: Network, limit: int) -> List[Transaction]:
        key = f"wallet_txs:{network.value}:{address}:{int(limit)}"
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("cache_hit", key=key)
            return list(cached)

        txs = self._with_fallback(
            network, "transactions", address, lambda p: p.get_transactions(address, limit)
        )
        txs = list(txs)[:limit]
        partial = [t for t in txs if t.missing_fields]
        if partial:
            fields = sorted({f for t in partial for f in t.missing_fields})
            self._report_partial(partial[0].provider, fields, address, count=len(partial))
        # tuple so a cached list cannot be mutated by a caller
        self.cache.put(key, tuple(txs), self._transactions_ttl)
        return txs

    def fetch_transaction_by_hash(self, tx_hash: str, network: Network) -> Transaction:
        key = f"tx_details:{network.value}:{tx_hash}"
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("cache_hit", key=key)
            return cached

        tx = self._with_fallback(
            network, "transaction", tx_hash, lambda p: p.get_transaction(tx_hash)
        )
        self._report_partial(tx.provider, tx.missing_fields, tx_hash)
        ttl = self._confirmed_tx_ttl if tx.status == TxStatus.CONFIRMED else self._unconfirmed_tx_ttl
        self.cache.put(key, tx, ttl)
        return tx

    # ---------- internal ----------

    def _with_fallback(
        self,
        network: Network,
        op: str,
        subject: str,
        call: Callable[[LedgerProviderPort], T],
    ) -> T:
        not_found: List[str] = []
        failures: List[str] = []

        for provider in self.providers_for(network):
            try:
                return call(provider)
            except NotFoundError:
                not_found.append(provider.name)
                logger.info("provider_not_found", provider=provider.name, op=op, subject=subject)
            except Exception as e:
                # ProviderError, or a payload the normalizer could not read
                failures.append(f"{provider.name}: {e}")
                logger.warning(
                    "provider_failed",
                    provider=provider.name,
                    op=op,
                    subject=subject,
                    error=str(e),
                    error_type=e.__class__.__name__,
                )

        if not_found:
            raise NotFoundError(
                f"{op} for {subject} on {network.value} not found "
                f"(not found: {', '.join(not_found)}; failed: {len(failures)})"
            )
        raise ProviderError(
            f"{op} for {subject} on {network.value} failed on every provider: {'; '.join(failures)}"
        )

    @staticmethod
    def _report_partial(provider: str, fields, subject: str, count: int = 1) -> None:
        if fields:
            err = PartialDataError(provider, fields)
            logger.warning("partial_data", subject=subject, provider=provider, records=count, error=str(err))
