from __future__ import annotations

import json
from pathlib import Path

from walletgraph.core.dto import Transaction
from walletgraph.core.models import InvestigationResult
from walletgraph.io.schemas import result_to_dict, transaction_to_dict


def write_result_json(result: InvestigationResult, out_dir: str, filename: str = "investigation.json") -> str:
    p = Path(out_dir)
    p.mkdir(parents=True, exist_ok=True)

    out_path = p / filename
    with out_path.open("w", encoding="utf-8") as f:
        json.dump(result_to_dict(result), f, indent=2)

    return str(out_path)


def write_transaction_json(tx: Transaction, out_dir: str, filename: str = "transaction.json") -> str:
    p = Path(out_dir)
    p.mkdir(parents=True, exist_ok=True)

    out_path = p / filename
    with out_path.open("w", encoding="utf-8") as f:
        json.dump(transaction_to_dict(tx), f, indent=2)

    return str(out_path)


def write_summary_md(result: InvestigationResult, out_dir: str, filename: str = "summary.md") -> str:
    """
    Minimal, investigator-friendly summary.
    """
    p = Path(out_dir)
    p.mkdir(parents=True, exist_ok=True)

    out_path = p / filename
    w = result.wallet
    ti = result.threat_intel
    a = result.analysis

    def short(addr: str) -> str:
        return addr if len(addr) <= 14 else f"{addr[:8]}...{addr[-6:]}"

    lines = []
    lines.append("# Wallet Investigation\n\n")
    lines.append(f"- Address: **{w.address}** ({w.network.value})\n")
    lines.append(f"- Balance: **{w.balance}**\n")
    lines.append(f"- Transactions: **{w.transaction_count}**\n")
    lines.append(f"- Risk: **{w.risk_level.value}** ({w.risk_score}/100)\n")
    if result.cancelled:
        lines.append("- _Run was cancelled; results are partial._\n")
    lines.append("\n")

    lines.append("## Threat Intel\n\n")
    if not ti.is_known_threat:
        lines.append("_No known threat attribution._\n\n")
    else:
        lines.append(f"- Types: {', '.join(ti.threat_type)}\n")
        lines.append(f"- Sanctioned: {'yes' if ti.sanctioned else 'no'}\n")
        lines.append(f"- Abuse reports: {ti.abuse_reports}\n\n")

    if a is not None:
        lines.append("## Analysis\n\n")
        lines.append(f"- Behavior: {a.behavior_pattern}\n")
        lines.append(f"- Volume: {a.volume_analysis}\n")
        lines.append(f"- Frequency: {a.frequency_analysis}\n")
        for f in a.risk_factors:
            lines.append(f"- Risk factor: {f}\n")
        for r in a.recommendations:
            lines.append(f"- Recommendation: {r}\n")
        lines.append("\n")

    lines.append("## Connected Wallets (by transaction count)\n\n")
    top = sorted(result.connected_wallets, key=lambda c: c.transaction_count, reverse=True)[:15]
    if not top:
        lines.append("_No connected wallets found._\n")
    else:
        for c in top:
            lines.append(
                f"- **{c.transaction_count} tx** | {short(c.counterparty_of)} <-> {c.address} "
                f"| volume {c.total_volume} | risk {c.risk_score}\n"
            )

    with out_path.open("w", encoding="utf-8") as f:
        f.writelines(lines)

    return str(out_path)
