from __future__ import annotations

import threading
import time
from typing import Callable, List, Optional, Union

import structlog

from walletgraph.config import settings
from walletgraph.core.dto import ThreatLabels, Transaction, WalletInfo
from walletgraph.core.enums import Network
from walletgraph.core.errors import InvestigationError, ValidationError
from walletgraph.core.models import (
    Analysis,
    ConnectedWallet,
    Graph,
    InvestigationOptions,
    InvestigationResult,
    ThreatIntel,
)
from walletgraph.core.networks import detect_network, parse_network, validate_address, validate_tx_hash
from walletgraph.ports.threat_label_port import ThreatLabelPort
from walletgraph.services import risk_classifier
from walletgraph.services.graph_builder import GraphBuilder, ProgressFn
from walletgraph.services.layout_engine import LayoutEngine
from walletgraph.services.ledger_gateway import LedgerGateway

logger = structlog.get_logger(__name__)


class InvestigationService:
    """
    One investigation per call: root wallet, recent transactions, counter-party
    graph with layout, threat intel and a behavioral summary.

    Only the root wallet lookup is fatal. Transactions and graph degrade to
    empty on failure, and a cancelled run returns what it has so far.
    """

    def __init__(
        self,
        gateway: LedgerGateway,
        labels: ThreatLabelPort,
        graph_builder: Optional[GraphBuilder] = None,
        layout: Optional[LayoutEngine] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.gateway = gateway
        self.labels = labels
        self.graph_builder = graph_builder or GraphBuilder(gateway, labels, clock=clock)
        self.layout = layout or LayoutEngine()
        self._clock = clock

    def investigate(
        self,
        address: str,
        network: Union[Network, str, None] = None,
        options: Optional[InvestigationOptions] = None,
        cancel: Optional[threading.Event] = None,
        on_progress: Optional[ProgressFn] = None,
    ) -> InvestigationResult:
        opts = options or InvestigationOptions()
        self._validate_options(opts)

        net = detect_network(address) if network is None else parse_network(network)
        addr = validate_address(address, net)
        log = logger.bind(address=addr, network=net.value)
        log.info("investigation_started", build_graph=opts.build_graph, depth=opts.graph_depth)

        # fatal on NotFoundError / ProviderError
        wallet = self.gateway.fetch_wallet_info(addr, net)

        transactions: List[Transaction] = []
        if opts.fetch_transactions and not self._cancelled(cancel):
            try:
                transactions = self.gateway.fetch_transactions(addr, net, opts.transaction_limit)
            except InvestigationError as e:
                log.warning("transactions_unavailable", error=str(e))

        graph = Graph()
        if opts.build_graph and not self._cancelled(cancel):
            try:
                graph = self.graph_builder.build(
                    addr,
                    net,
                    max_depth=opts.graph_depth,
                    max_nodes=opts.max_nodes,
                    cancel=cancel,
                    on_progress=on_progress,
                )
            except InvestigationError as e:
                log.warning("graph_unavailable", error=str(e))

        if opts.layout and graph.nodes:
            self.layout.simulate(graph)

        labels = self.labels.classify_address(addr)
        assessment = risk_classifier.classify(wallet, labels, transactions, now_ts=int(self._clock()))
        wallet = risk_classifier.apply_assessment(wallet, labels, assessment)
        if addr in graph.nodes:
            graph.nodes[addr].wallet = wallet

        result = InvestigationResult(
            wallet=wallet,
            transactions=transactions,
            connected_wallets=self.connected_wallets(addr, graph),
            graph=graph,
            threat_intel=self._threat_intel(wallet, labels),
            analysis=Analysis(
                behavior_pattern=risk_classifier.behavior_pattern(transactions),
                volume_analysis=risk_classifier.volume_analysis(transactions),
                frequency_analysis=risk_classifier.frequency_analysis(transactions),
                risk_factors=tuple(risk_classifier.risk_factors(wallet, assessment, transactions)),
                recommendations=tuple(risk_classifier.recommendations(wallet, labels, transactions)),
            ),
            cancelled=self._cancelled(cancel),
        )
        log.info(
            "investigation_done",
            risk_score=wallet.risk_score,
            risk_level=wallet.risk_level.value,
            transactions=len(transactions),
            nodes=len(graph.nodes),
            edges=len(graph.edges),
            cancelled=result.cancelled,
        )
        return result

    def lookup_transaction(self, tx_hash: str, network: Union[Network, str]) -> Transaction:
        net = parse_network(network)
        h = validate_tx_hash(tx_hash, net)
        return self.gateway.fetch_transaction_by_hash(h, net)

    # -------------------------
    # Helpers
    # -------------------------

    @staticmethod
    def connected_wallets(root: str, graph: Graph) -> List[ConnectedWallet]:
        """
        One undirected record per edge. For edges on the root the record names
        the other endpoint; deeper edges name the endpoint discovered later.
        """
        out: List[ConnectedWallet] = []
        for edge in graph.iter_edges():
            if edge.touches(root):
                address, via = edge.other(root), root
            else:
                address, via = edge.target, edge.source
            node = graph.nodes.get(address)
            out.append(ConnectedWallet(
                address=address,
                counterparty_of=via,
                relationship="both",
                transaction_count=edge.transaction_count,
                total_volume=edge.total_volume,
                first_interaction=edge.first_tx_ts,
                last_interaction=edge.last_tx_ts,
                risk_score=node.wallet.risk_score if node else 0,
                level=node.level if node else None,
            ))
        return out

    @staticmethod
    def _threat_intel(wallet: WalletInfo, labels: ThreatLabels) -> ThreatIntel:
        types = []
        if wallet.is_ransomware:
            types.append("Ransomware")
        if wallet.is_mixer:
            types.append("Mixer")
        if labels.is_darknet:
            types.append("Darknet market")
        if labels.sanctioned:
            types.append("Sanctioned")
        return ThreatIntel(
            is_known_threat=bool(types),
            threat_type=tuple(types),
            abuse_reports=labels.abuse_reports,
            sanctioned=labels.sanctioned,
            details=tuple(labels.labels),
        )

    @staticmethod
    def _validate_options(opts: InvestigationOptions) -> None:
        if not settings.GRAPH_DEPTH_MIN <= opts.graph_depth <= settings.GRAPH_DEPTH_MAX:
            raise ValidationError(
                f"graph_depth must be in [{settings.GRAPH_DEPTH_MIN}, {settings.GRAPH_DEPTH_MAX}]"
            )
        if opts.max_nodes < 1:
            raise ValidationError("max_nodes must be >= 1")
        if opts.transaction_limit < 1:
            raise ValidationError("transaction_limit must be >= 1")

    @staticmethod
    def _cancelled(cancel: Optional[threading.Event]) -> bool:
        return cancel is not None and cancel.is_set()
