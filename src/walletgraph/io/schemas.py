from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Optional

from walletgraph.core.dto import Transaction, WalletInfo
from walletgraph.core.models import Graph, InvestigationResult


def _dec_to_str(x: Optional[Decimal]) -> Optional[str]:
    # keep as string for JSON precision safety
    return format(x, "f") if x is not None else None


def wallet_to_dict(w: WalletInfo) -> Dict[str, Any]:
    return {
        "address": w.address,
        "network": w.network.value,
        "balance": _dec_to_str(w.balance),
        "balance_usd": _dec_to_str(w.balance_usd),
        "total_received": _dec_to_str(w.total_received),
        "total_sent": _dec_to_str(w.total_sent),
        "transaction_count": w.transaction_count,
        "first_seen": w.first_seen,
        "last_seen": w.last_seen,
        "labels": list(w.labels),
        "is_exchange": w.is_exchange,
        "is_mixer": w.is_mixer,
        "is_ransomware": w.is_ransomware,
        "risk_score": w.risk_score,
        "risk_level": w.risk_level.value,
        "provider": w.provider,
    }


def transaction_to_dict(t: Transaction) -> Dict[str, Any]:
    return {
        "hash": t.tx_hash,
        "block_number": t.block_number,
        "block_hash": t.block_hash,
        "timestamp": t.timestamp,
        "status": t.status.value,
        "value": _dec_to_str(t.value),
        "fee": _dec_to_str(t.fee),
        "inputs": [{"address": i.address, "value": _dec_to_str(i.value)} for i in t.inputs],
        "outputs": [
            {"address": o.address, "value": _dec_to_str(o.value), "spent": o.spent}
            for o in t.outputs
        ],
        "provider": t.provider,
    }


def graph_to_dict(g: Graph) -> Dict[str, Any]:
    return {
        "nodes": [
            {
                "id": n.address,
                "address": n.address,
                "level": n.level,
                "type": "exchange" if n.wallet.is_exchange else "mixer" if n.wallet.is_mixer else "wallet",
                "balance": _dec_to_str(n.wallet.balance),
                "transaction_count": n.wallet.transaction_count,
                "risk_score": n.wallet.risk_score,
                "risk_level": n.wallet.risk_level.value,
                "x": n.x,
                "y": n.y,
            }
            for n in g.nodes.values()
        ],
        "edges": [
            {
                "source": e.source,
                "target": e.target,
                "transactions": e.transaction_count,
                "total_volume": _dec_to_str(e.total_volume),
                "first_tx": e.first_tx_ts,
                "last_tx": e.last_tx_ts,
                "direction": "bidirectional",
            }
            for e in g.iter_edges()
        ],
    }


def result_to_dict(r: InvestigationResult) -> Dict[str, Any]:
    ti = r.threat_intel
    a = r.analysis
    return {
        "wallet": wallet_to_dict(r.wallet),
        "transactions": [transaction_to_dict(t) for t in r.transactions],
        "connected_wallets": [
            {
                "address": c.address,
                "counterparty_of": c.counterparty_of,
                "relationship": c.relationship,
                "transaction_count": c.transaction_count,
                "total_volume": _dec_to_str(c.total_volume),
                "first_interaction": c.first_interaction,
                "last_interaction": c.last_interaction,
                "risk_score": c.risk_score,
                "level": c.level,
            }
            for c in r.connected_wallets
        ],
        "graph": graph_to_dict(r.graph),
        "threat_intel": {
            "is_known_threat": ti.is_known_threat,
            "threat_type": list(ti.threat_type),
            "abuse_reports": ti.abuse_reports,
            "sanctioned": ti.sanctioned,
            "details": list(ti.details),
        },
        "analysis": None if a is None else {
            "behavior_pattern": a.behavior_pattern,
            "volume_analysis": a.volume_analysis,
            "frequency_analysis": a.frequency_analysis,
            "risk_factors": list(a.risk_factors),
            "recommendations": list(a.recommendations),
        },
        "cancelled": r.cancelled,
    }
