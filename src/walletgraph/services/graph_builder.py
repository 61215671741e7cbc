from __future__ import annotations

import threading
import time
from collections import OrderedDict, deque
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Deque, Dict, List, Optional, Sequence, Set, Tuple

import structlog

from walletgraph.core.dto import Transaction, WalletInfo
from walletgraph.core.enums import Network
from walletgraph.core.errors import InvestigationError
from walletgraph.core.models import Graph, GraphLimits
from walletgraph.ports.threat_label_port import ThreatLabelPort
from walletgraph.services.ledger_gateway import LedgerGateway
from walletgraph.services.risk_classifier import apply_assessment, classify

logger = structlog.get_logger(__name__)

ProgressFn = Callable[[str, dict], None]


@dataclass
class _BfsState:
    """Queue and visited set owned by one build() call."""

    queue: Deque[Tuple[str, int]] = field(default_factory=deque)
    visited: Set[str] = field(default_factory=set)
    failed: Set[str] = field(default_factory=set)
    processed: int = 0


class GraphBuilder:
    """
    Builds a counter-party graph around a root address.

    - Traversal: breadth-first, one dequeued node at a time
    - Bounds: max_depth levels, max_nodes nodes, a fixed number of
      transactions and distinct counterparts per node
    - Edges: one per unordered address pair, aggregated over transactions

    Only the root lookup is fatal; any other failed lookup skips that address.
    """

    def __init__(
        self,
        gateway: LedgerGateway,
        labels: ThreatLabelPort,
        limits: GraphLimits = GraphLimits(),
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.gateway = gateway
        self.labels = labels
        self.limits = limits
        self._clock = clock

    def build(
        self,
        root: str,
        network: Network,
        max_depth: int,
        max_nodes: int,
        cancel: Optional[threading.Event] = None,
        on_progress: Optional[ProgressFn] = None,
    ) -> Graph:
        emit = on_progress or (lambda event, data: None)
        emit("start", {"address": root, "max_depth": max_depth, "max_nodes": max_nodes})

        # fatal if this raises
        root_wallet = self.gateway.fetch_wallet_info(root, network)

        graph = Graph()
        graph.add_node(self._classified(root_wallet), 0)
        state = _BfsState(queue=deque([(root, 0)]), visited={root})

        while state.queue and len(graph.nodes) < max_nodes:
            if cancel is not None and cancel.is_set():
                logger.info("graph_build_cancelled", root=root, nodes=len(graph.nodes))
                break

            addr, level = state.queue.popleft()
            state.processed += 1
            emit("visit", {
                "address": addr,
                "level": level,
                "queue": len(state.queue),
                "processed": state.processed,
                "nodes": len(graph.nodes),
                "edges": len(graph.edges),
            })

            if level >= max_depth:
                continue

            self._expand(graph, state, addr, level, network, max_nodes, cancel)

        logger.info(
            "graph_build_done",
            root=root,
            network=network.value,
            nodes=len(graph.nodes),
            edges=len(graph.edges),
            processed=state.processed,
        )
        emit("done", {"nodes": len(graph.nodes), "edges": len(graph.edges)})
        return graph

    # -------------------------
    # Expansion
    # -------------------------

    def _expand(
        self,
        graph: Graph,
        state: _BfsState,
        addr: str,
        level: int,
        network: Network,
        max_nodes: int,
        cancel: Optional[threading.Event],
    ) -> None:
        try:
            txs = self.gateway.fetch_transactions(addr, network, self.limits.tx_page_size)
        except InvestigationError as e:
            logger.warning("expand_skipped", address=addr, error=str(e))
            return

        counterparts = self._counterparts(addr, txs)

        fresh = [c for c in counterparts if c not in state.visited and c not in state.failed]
        wallets = self._fetch_wallets(fresh, network, max_nodes - len(graph.nodes), state, cancel)

        for cp, cp_txs in counterparts.items():
            wallet = wallets.get(cp)
            if wallet is not None:
                graph.add_node(self._classified(wallet), level + 1)
                state.visited.add(cp)
                state.queue.append((cp, level + 1))

            # counterparts that did not become nodes get no edge
            if cp not in graph.nodes:
                continue
            edge = graph.edge_between(addr, cp)
            for tx in cp_txs:
                edge.record(tx)

    def _counterparts(self, addr: str, txs: Sequence[Transaction]) -> "OrderedDict[str, List[Transaction]]":
        """
        Distinct counterparts in first-encountered order (txs are newest first),
        each with the transactions it appears in, capped per node.
        """
        out: "OrderedDict[str, List[Transaction]]" = OrderedDict()
        for tx in txs:
            for cp in tx.counterparties(addr):
                out.setdefault(cp, []).append(tx)

        cap = self.limits.max_counterparties_per_node
        if cap > 0 and len(out) > cap:
            out = OrderedDict(list(out.items())[:cap])
        return out

    def _fetch_wallets(
        self,
        candidates: List[str],
        network: Network,
        budget: int,
        state: _BfsState,
        cancel: Optional[threading.Event],
    ) -> Dict[str, WalletInfo]:
        """
        The first `budget` candidates (in order) whose lookup succeeds.

        Batches never exceed the remaining budget, so parallel fetching
        selects exactly the nodes a sequential scan would.
        """
        got: Dict[str, WalletInfo] = {}
        idx = 0
        while idx < len(candidates) and len(got) < budget:
            if cancel is not None and cancel.is_set():
                break
            batch = candidates[idx: idx + (budget - len(got))]
            idx += len(batch)
            for cp, wallet in zip(batch, self._fetch_batch(batch, network)):
                if wallet is None:
                    state.failed.add(cp)
                else:
                    got[cp] = wallet
        return got

    def _fetch_batch(self, batch: List[str], network: Network) -> List[Optional[WalletInfo]]:
        workers = min(self.limits.max_workers, len(batch))
        if workers <= 1:
            return [self._try_wallet(a, network) for a in batch]
        with ThreadPoolExecutor(max_workers=workers) as pool:
            return list(pool.map(lambda a: self._try_wallet(a, network), batch))

    def _try_wallet(self, address: str, network: Network) -> Optional[WalletInfo]:
        try:
            return self.gateway.fetch_wallet_info(address, network)
        except InvestigationError as e:
            logger.info("node_skipped", address=address, error=str(e))
            return None

    # -------------------------
    # Helpers
    # -------------------------

    def _classified(self, wallet: WalletInfo) -> WalletInfo:
        labels = self.labels.classify_address(wallet.address)
        assessment = classify(wallet, labels, now_ts=int(self._clock()))
        return apply_assessment(wallet, labels, assessment)
