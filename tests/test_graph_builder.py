import threading
import unittest
from decimal import Decimal

from walletgraph.adapters.labels.static_label_adapter import StaticThreatLabelAdapter
from walletgraph.adapters.ledger.static_provider import StaticLedgerProvider
from walletgraph.core.dto import Transaction, TxInput, TxOutput, WalletInfo
from walletgraph.core.enums import Network, RiskLevel
from walletgraph.core.errors import NotFoundError
from walletgraph.core.models import GraphLimits
from walletgraph.services.graph_builder import GraphBuilder
from walletgraph.services.ledger_gateway import LedgerGateway

NOW = 1_700_000_000


def _wallets(*addresses):
    return {a: WalletInfo(address=a, network=Network.BITCOIN, balance=Decimal("1")) for a in addresses}


def _tx(tx_hash, src, dst, value, ts):
    return Transaction(
        tx_hash=tx_hash,
        timestamp=ts,
        inputs=(TxInput(src, Decimal(value)),),
        outputs=(TxOutput(dst, Decimal(value)),),
    )


def _builder(provider, labels=None, **limits):
    gateway = LedgerGateway({Network.BITCOIN: [provider]})
    return GraphBuilder(
        gateway,
        labels or StaticThreatLabelAdapter({}),
        limits=GraphLimits(**limits),
        clock=lambda: NOW,
    )


class GraphBuilderTests(unittest.TestCase):
    def setUp(self) -> None:
        self.txs = [
            _tx("t1", "A", "B", "1.0", NOW - 400),
            _tx("t2", "A", "B", "1.5", NOW - 300),
            _tx("t3", "A", "B", "2.5", NOW - 200),
            _tx("t4", "A", "C", "0.1", NOW - 100),
        ]

    def test_simple_star(self) -> None:
        provider = StaticLedgerProvider(wallets=_wallets("A", "B", "C"), transactions=self.txs)
        graph = _builder(provider).build("A", Network.BITCOIN, max_depth=1, max_nodes=10)

        self.assertEqual(set(graph.nodes), {"A", "B", "C"})
        self.assertEqual(graph.nodes["A"].level, 0)
        self.assertEqual(graph.nodes["B"].level, 1)
        self.assertEqual(len(graph.edges), 2)

        ab = graph.edges[frozenset(("A", "B"))]
        self.assertEqual(ab.transaction_count, 3)
        self.assertEqual(ab.total_volume, Decimal("5.0"))
        self.assertEqual((ab.first_tx_ts, ab.last_tx_ts), (NOW - 400, NOW - 200))

        ac = graph.edges[frozenset(("A", "C"))]
        self.assertEqual(ac.transaction_count, 1)
        self.assertEqual(ac.total_volume, Decimal("0.1"))

        # depth 1 never expands the counterparts
        self.assertEqual(provider.calls[("txs", "B")], 0)

    def test_single_node_budget(self) -> None:
        provider = StaticLedgerProvider(wallets=_wallets("A", "B", "C"), transactions=self.txs)
        graph = _builder(provider).build("A", Network.BITCOIN, max_depth=1, max_nodes=1)

        self.assertEqual(set(graph.nodes), {"A"})
        self.assertEqual(graph.edges, {})

    def test_node_budget_is_respected(self) -> None:
        provider = StaticLedgerProvider(wallets=_wallets("A", "B", "C"), transactions=self.txs)
        graph = _builder(provider).build("A", Network.BITCOIN, max_depth=1, max_nodes=2)

        # C comes first: transactions are read newest first
        self.assertEqual(set(graph.nodes), {"A", "C"})
        self.assertEqual(len(graph.edges), 1)

    def test_root_failure_is_fatal(self) -> None:
        provider = StaticLedgerProvider(wallets=_wallets("B"), transactions=self.txs)
        with self.assertRaises(NotFoundError):
            _builder(provider).build("A", Network.BITCOIN, max_depth=1, max_nodes=10)

    def test_failed_counterpart_is_skipped(self) -> None:
        provider = StaticLedgerProvider(
            wallets=_wallets("A", "B", "C"), transactions=self.txs, failing=["B"]
        )
        graph = _builder(provider).build("A", Network.BITCOIN, max_depth=1, max_nodes=10)

        self.assertEqual(set(graph.nodes), {"A", "C"})
        self.assertNotIn(frozenset(("A", "B")), graph.edges)

    def test_failed_expansion_keeps_node(self) -> None:
        txs = self.txs + [_tx("t5", "B", "D", "3", NOW - 50)]
        wallets = _wallets("A", "B", "C", "D")
        provider = StaticLedgerProvider(wallets=wallets, transactions=txs)
        builder = _builder(provider)
        # B resolves as a wallet but its transaction page fails
        builder.gateway.cache.put("wallet_info:bitcoin:B", wallets["B"], 600)
        provider._failing.add("B")

        graph = builder.build("A", Network.BITCOIN, max_depth=2, max_nodes=10)

        self.assertIn("B", graph.nodes)
        self.assertNotIn("D", graph.nodes)

    def test_second_level_and_invariants(self) -> None:
        txs = self.txs + [
            _tx("t5", "B", "D", "3", NOW - 50),
            _tx("t6", "D", "E", "1", NOW - 40),
        ]
        provider = StaticLedgerProvider(wallets=_wallets("A", "B", "C", "D", "E"), transactions=txs)
        graph = _builder(provider).build("A", Network.BITCOIN, max_depth=2, max_nodes=10)

        self.assertEqual(set(graph.nodes), {"A", "B", "C", "D"})
        self.assertEqual(graph.nodes["D"].level, 2)
        for edge in graph.iter_edges():
            self.assertIn(edge.source, graph.nodes)
            self.assertIn(edge.target, graph.nodes)
            self.assertNotEqual(edge.source, edge.target)
        for node in graph.nodes.values():
            self.assertLessEqual(node.level, 2)

    def test_transaction_seen_from_both_ends_counts_once(self) -> None:
        provider = StaticLedgerProvider(wallets=_wallets("A", "B", "C"), transactions=self.txs)
        graph = _builder(provider).build("A", Network.BITCOIN, max_depth=2, max_nodes=10)

        self.assertEqual(graph.edges[frozenset(("A", "B"))].transaction_count, 3)
        self.assertEqual(graph.edges[frozenset(("A", "B"))].total_volume, Decimal("5.0"))

    def test_fan_out_is_capped(self) -> None:
        others = [f"X{i:02d}" for i in range(15)]
        txs = [_tx(f"h{i}", "A", a, "1", NOW - i) for i, a in enumerate(others)]
        provider = StaticLedgerProvider(wallets=_wallets("A", *others), transactions=txs)
        graph = _builder(provider, max_counterparties_per_node=10).build(
            "A", Network.BITCOIN, max_depth=1, max_nodes=30
        )

        self.assertEqual(len(graph.nodes), 11)
        self.assertEqual(set(graph.nodes) - {"A"}, set(others[:10]))

    def test_cancel_before_expansion(self) -> None:
        provider = StaticLedgerProvider(wallets=_wallets("A", "B", "C"), transactions=self.txs)
        cancel = threading.Event()
        cancel.set()

        graph = _builder(provider).build("A", Network.BITCOIN, max_depth=2, max_nodes=10, cancel=cancel)

        self.assertEqual(set(graph.nodes), {"A"})
        self.assertEqual(provider.calls[("txs", "A")], 0)

    def test_parallel_matches_sequential(self) -> None:
        others = [f"Y{i:02d}" for i in range(12)]
        txs = [_tx(f"h{i}", "A", a, "1", NOW - i) for i, a in enumerate(others)]
        failing = ["Y01", "Y04"]

        def run(workers):
            provider = StaticLedgerProvider(
                wallets=_wallets("A", *others), transactions=txs, failing=failing
            )
            builder = _builder(provider, max_counterparties_per_node=12, max_workers=workers)
            return builder.build("A", Network.BITCOIN, max_depth=1, max_nodes=6)

        sequential = run(1)
        parallel = run(4)

        self.assertEqual(set(sequential.nodes), {"A", "Y00", "Y02", "Y03", "Y05", "Y06"})
        self.assertEqual(set(parallel.nodes), set(sequential.nodes))
        self.assertEqual(set(parallel.edges), set(sequential.edges))

    def test_nodes_are_classified(self) -> None:
        labels = StaticThreatLabelAdapter({"C": {"labels": ["mixer"], "is_mixer": True, "sanctioned": True}})
        provider = StaticLedgerProvider(wallets=_wallets("A", "B", "C"), transactions=self.txs)
        graph = _builder(provider, labels=labels).build("A", Network.BITCOIN, max_depth=1, max_nodes=10)

        c = graph.nodes["C"].wallet
        self.assertTrue(c.is_mixer)
        self.assertEqual(c.risk_level, RiskLevel.CRITICAL)
        self.assertEqual(graph.nodes["B"].wallet.risk_level, RiskLevel.SAFE)

    def test_progress_events(self) -> None:
        provider = StaticLedgerProvider(wallets=_wallets("A", "B", "C"), transactions=self.txs)
        events = []
        _builder(provider).build(
            "A", Network.BITCOIN, max_depth=1, max_nodes=10,
            on_progress=lambda event, data: events.append(event),
        )

        self.assertEqual(events[0], "start")
        self.assertEqual(events[-1], "done")
        self.assertEqual(events.count("visit"), 3)


if __name__ == "__main__":
    unittest.main()
