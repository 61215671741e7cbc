from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, FrozenSet, Iterator, List, Optional, Set, Tuple

from walletgraph.config import settings
from walletgraph.core.dto import Transaction, WalletInfo


# Configuration models

@dataclass(frozen=True)
class InvestigationOptions:
    """
    User input / run configuration for one investigation.
    """

    fetch_transactions: bool = True
    build_graph: bool = True
    graph_depth: int = settings.INVESTIGATION_GRAPH_DEPTH
    max_nodes: int = settings.INVESTIGATION_MAX_NODES
    transaction_limit: int = settings.INVESTIGATION_TX_LIMIT
    layout: bool = True


@dataclass(frozen=True)
class GraphLimits:
    tx_page_size: int = settings.GRAPH_TX_PAGE_SIZE
    max_counterparties_per_node: int = settings.GRAPH_MAX_COUNTERPARTIES_PER_NODE
    max_workers: int = settings.GRAPH_MAX_WORKERS      # 1 = strictly sequential


@dataclass(frozen=True)
class LayoutConfig:
    k_rep: float = settings.LAYOUT_REPULSION
    k_attr: float = settings.LAYOUT_ATTRACTION
    k_center: float = settings.LAYOUT_CENTER_GRAVITY
    damping: float = settings.LAYOUT_DAMPING
    iterations: int = settings.LAYOUT_ITERATIONS
    radius: float = settings.LAYOUT_RADIUS
    width: float = settings.LAYOUT_WIDTH
    height: float = settings.LAYOUT_HEIGHT


# Graph models

@dataclass
class Node:

    wallet: WalletInfo
    level: int = 0

    # filled by the layout engine
    x: float = 0.0
    y: float = 0.0
    vx: float = 0.0
    vy: float = 0.0

    @property
    def address(self) -> str:
        return self.wallet.address


@dataclass
class Edge:

    source: str
    target: str

    transaction_count: int = 0
    total_volume: Decimal = Decimal("0")
    first_tx_ts: Optional[int] = None
    last_tx_ts: Optional[int] = None

    tx_hashes: Set[str] = field(default_factory=set, repr=False)

    @property
    def key(self) -> FrozenSet[str]:
        return frozenset((self.source, self.target))

    def touches(self, address: str) -> bool:
        return address in (self.source, self.target)

    def other(self, address: str) -> str:
        return self.target if address == self.source else self.source

    def record(self, tx: Transaction) -> bool:
        """Accumulate one transaction; returns False if it was already counted."""
        if tx.tx_hash in self.tx_hashes:
            return False
        self.tx_hashes.add(tx.tx_hash)
        self.transaction_count += 1
        self.total_volume += tx.value
        ts = tx.timestamp
        if self.first_tx_ts is None or ts < self.first_tx_ts:
            self.first_tx_ts = ts
        if self.last_tx_ts is None or ts > self.last_tx_ts:
            self.last_tx_ts = ts
        return True


@dataclass
class Graph:

    nodes: Dict[str, Node] = field(default_factory=dict)
    edges: Dict[FrozenSet[str], Edge] = field(default_factory=dict)

    def add_node(self, wallet: WalletInfo, level: int) -> Node:
        node = Node(wallet=wallet, level=level)
        self.nodes[wallet.address] = node
        return node

    def edge_between(self, a: str, b: str) -> Edge:
        key = frozenset((a, b))
        edge = self.edges.get(key)
        if edge is None:
            edge = Edge(source=a, target=b)
            self.edges[key] = edge
        return edge

    def iter_edges(self) -> Iterator[Edge]:
        return iter(self.edges.values())

    def neighbors(self) -> Dict[str, List[str]]:
        adj: Dict[str, List[str]] = {a: [] for a in self.nodes}
        for e in self.edges.values():
            adj[e.source].append(e.target)
            adj[e.target].append(e.source)
        return adj


# Result models

@dataclass(frozen=True)
class ConnectedWallet:
    address: str
    counterparty_of: str
    relationship: str
    transaction_count: int
    total_volume: Decimal
    first_interaction: Optional[int]
    last_interaction: Optional[int]
    risk_score: int
    level: Optional[int] = None


@dataclass(frozen=True)
class ThreatIntel:
    is_known_threat: bool = False
    threat_type: Tuple[str, ...] = ()
    abuse_reports: int = 0
    sanctioned: bool = False
    details: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Analysis:
    behavior_pattern: str
    volume_analysis: str
    frequency_analysis: str
    risk_factors: Tuple[str, ...] = ()
    recommendations: Tuple[str, ...] = ()


@dataclass
class InvestigationResult:
    wallet: WalletInfo
    transactions: List[Transaction] = field(default_factory=list)
    connected_wallets: List[ConnectedWallet] = field(default_factory=list)
    graph: Graph = field(default_factory=Graph)
    threat_intel: ThreatIntel = field(default_factory=ThreatIntel)
    analysis: Optional[Analysis] = None
    cancelled: bool = False
