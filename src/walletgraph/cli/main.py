from __future__ import annotations

import argparse
import datetime as dt
import signal
import sys
import threading
import time

from walletgraph.adapters.labels.static_label_adapter import StaticThreatLabelAdapter
from walletgraph.adapters.ledger.registry import build_default_providers
from walletgraph.adapters.ledger.static_provider import StaticLedgerProvider
from walletgraph.config import settings
from walletgraph.config.logging import configure_logging
from walletgraph.core.enums import Network
from walletgraph.core.errors import InvestigationError, ValidationError
from walletgraph.core.models import GraphLimits, InvestigationOptions
from walletgraph.core.networks import detect_network, parse_network
from walletgraph.io.output_writer import write_result_json, write_summary_md, write_transaction_json
from walletgraph.services.graph_builder import GraphBuilder
from walletgraph.services.investigation_service import InvestigationService
from walletgraph.services.ledger_gateway import LedgerGateway


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="walletgraph", description="Wallet counter-party graph investigator")
    target = p.add_mutually_exclusive_group(required=True)
    target.add_argument("--address", help="Wallet address to investigate")
    target.add_argument("--tx", help="Transaction hash to look up (requires --network)")
    p.add_argument("--network", choices=[n.value for n in Network if n != Network.UNKNOWN],
                   help="Network (detected from the address when omitted)")
    p.add_argument("--depth", type=int, default=settings.INVESTIGATION_GRAPH_DEPTH, help="Graph depth (1-3)")
    p.add_argument("--max-nodes", type=int, default=settings.INVESTIGATION_MAX_NODES, help="Node budget for the graph")
    p.add_argument("--tx-limit", type=int, default=settings.INVESTIGATION_TX_LIMIT, help="Transactions to fetch for the root")
    p.add_argument("--workers", type=int, default=settings.GRAPH_MAX_WORKERS, help="Parallel wallet lookups per node (1=sequential)")
    p.add_argument("--no-graph", action="store_true", help="Skip the counter-party graph")
    p.add_argument("--no-transactions", action="store_true", help="Skip the root transaction list")
    p.add_argument("--no-layout", action="store_true", help="Skip the force-directed layout")
    p.add_argument("--out", default="out", help="Output folder")
    p.add_argument("--static-fixture", help="JSON fixture for the static provider (dev/testing)")
    p.add_argument("--labels", default=settings.THREAT_LABELS_PATH, help="JSON threat-label dataset")
    p.add_argument("--log-level", default=settings.LOG_LEVEL, help="Log level")
    return p


def _make_progress_reporter(address: str, depth: int):
    start_time = time.time()
    last_print = 0.0
    is_tty = sys.stdout.isatty()

    def _ts() -> str:
        return dt.datetime.now().strftime("%H:%M:%S")

    def _print_line(message: str) -> None:
        if is_tty:
            sys.stdout.write("\r" + message.ljust(88))
            sys.stdout.flush()
        else:
            print(message)

    def _clear_line() -> None:
        if is_tty:
            sys.stdout.write("\r" + (" " * 88) + "\r")
            sys.stdout.flush()

    def progress(event: str, data: dict) -> None:
        nonlocal last_print
        now = time.time()
        if event == "start":
            print(f"[{_ts()}] Building graph for {address} • depth {depth} • max {data['max_nodes']} nodes")
            return
        if event == "visit":
            if is_tty and now - last_print < 0.2:
                return
            _print_line(
                f"Level {data['level']}/{depth} • "
                f"queue {data['queue']} • "
                f"nodes {data['nodes']} • "
                f"edges {data['edges']}"
            )
            last_print = now
            return
        if event == "done":
            _clear_line()
            elapsed = time.time() - start_time
            print(f"[{_ts()}] Graph done in {elapsed:.1f}s • {data['nodes']} nodes • {data['edges']} edges")

    return progress


def _build_service(args) -> InvestigationService:
    if args.static_fixture:
        static = StaticLedgerProvider.from_fixture(args.static_fixture)
        providers = {n: [static] for n in Network if n != Network.UNKNOWN}
    else:
        providers = build_default_providers()

    labels = StaticThreatLabelAdapter.from_file(args.labels) if args.labels else StaticThreatLabelAdapter()
    gateway = LedgerGateway(providers)
    builder = GraphBuilder(gateway, labels, limits=GraphLimits(max_workers=max(1, args.workers)))
    return InvestigationService(gateway, labels, graph_builder=builder)


def main() -> int:
    args = build_arg_parser().parse_args()
    configure_logging(args.log_level)

    svc = _build_service(args)

    if args.tx:
        if not args.network:
            print("--tx requires --network", file=sys.stderr)
            return 2
        try:
            tx = svc.lookup_transaction(args.tx, args.network)
        except ValidationError as exc:
            print(f"Invalid input: {exc}", file=sys.stderr)
            return 2
        except InvestigationError as exc:
            print(f"Lookup failed: {exc.__class__.__name__}: {exc}", file=sys.stderr)
            return 1
        print(f"Wrote: {write_transaction_json(tx, args.out)}")
        return 0

    network = parse_network(args.network) if args.network else detect_network(args.address)
    options = InvestigationOptions(
        fetch_transactions=not args.no_transactions,
        build_graph=not args.no_graph,
        graph_depth=args.depth,
        max_nodes=args.max_nodes,
        transaction_limit=args.tx_limit,
        layout=not args.no_layout,
    )

    # Ctrl-C stops the crawl and keeps what was gathered
    cancel = threading.Event()
    signal.signal(signal.SIGINT, lambda *_: cancel.set())

    try:
        result = svc.investigate(
            args.address,
            network,
            options,
            cancel=cancel,
            on_progress=_make_progress_reporter(args.address, args.depth),
        )
    except ValidationError as exc:
        print(f"Invalid input: {exc}", file=sys.stderr)
        return 2
    except InvestigationError as exc:
        print(f"Investigation failed: {exc.__class__.__name__}: {exc}", file=sys.stderr)
        return 1

    print("Writing outputs...")
    print(f"Wrote: {write_result_json(result, args.out)}")
    print(f"Wrote: {write_summary_md(result, args.out)}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
