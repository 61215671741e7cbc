from __future__ import annotations

from typing import Dict, List

from walletgraph.adapters.ledger.blockchain_info_provider import BlockchainInfoProvider
from walletgraph.adapters.ledger.esplora_provider import EsploraProvider
from walletgraph.adapters.ledger.etherscan_provider import EtherscanProvider
from walletgraph.adapters.ledger.ethplorer_provider import EthplorerProvider
from walletgraph.adapters.ledger.tronscan_provider import TronscanProvider
from walletgraph.config import settings
from walletgraph.core.enums import Network
from walletgraph.ports.ledger_provider_port import LedgerProviderPort


def build_default_providers() -> Dict[Network, List[LedgerProviderPort]]:
    """Provider chains per network, highest priority first."""
    ethereum: List[LedgerProviderPort] = []
    if settings.ETHERSCAN_API_KEY:
        ethereum.append(EtherscanProvider())
    ethereum.append(EthplorerProvider())

    return {
        Network.BITCOIN: [BlockchainInfoProvider(), EsploraProvider.blockstream()],
        Network.LITECOIN: [EsploraProvider.litecoinspace()],
        Network.ETHEREUM: ethereum,
        Network.TRON: [TronscanProvider()],
    }
