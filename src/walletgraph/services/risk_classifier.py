from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from statistics import mean, pstdev
from typing import Dict, List, Optional, Sequence

from walletgraph.core.dto import RiskAssessment, ThreatLabels, Transaction, WalletInfo
from walletgraph.core.enums import RiskLevel

DAY = 24 * 3600

# Additive adjustments; the sum is clamped to [0, 100].
RISK_WEIGHTS: Dict[str, int] = {
    "ransomware": 50,
    "mixer": 40,
    "darknet_market": 35,
    "sanctioned": 45,
    "abuse_reports": 30,
    "suspicious_pattern": 20,
    "new_wallet": 10,
    "high_volume": 15,
    "known_exchange": -20,
    "long_history": -15,
    "regular_cadence": -10,
    "verified_entity": -25,
}

RISK_FACTOR_TEXT: Dict[str, str] = {
    "ransomware": "Associated with ransomware activities",
    "mixer": "Connected to mixing services",
    "darknet_market": "Linked to a darknet market",
    "sanctioned": "Address is on a sanctions list",
    "abuse_reports": "More than 10 abuse reports filed",
    "suspicious_pattern": "Burst of rapid transactions",
    "new_wallet": "Wallet is less than 30 days old",
    "high_volume": "Total volume above 100 units",
    "known_exchange": "Exchange wallet - high volume expected",
    "long_history": "History longer than 5 years",
    "regular_cadence": "Regular transaction cadence",
    "verified_entity": "Independently verified entity",
}

# A ransomware attribution keeps at least this score before offsets.
KNOWN_THREAT_FLOOR = 61
ABUSE_REPORT_THRESHOLD = 10
HIGH_VOLUME_THRESHOLD = Decimal("100")
NEW_WALLET_DAYS = 30
LONG_HISTORY_DAYS = 5 * 365
BURST_MIN_TXS = 10
BURST_MAX_MEAN_INTERVAL_SEC = 600
CADENCE_MIN_TXS = 5
CADENCE_MAX_CV = 0.5


def level_from_score(score: int) -> RiskLevel:
    if score <= 20:
        return RiskLevel.SAFE
    if score <= 40:
        return RiskLevel.LOW
    if score <= 60:
        return RiskLevel.MEDIUM
    if score <= 80:
        return RiskLevel.HIGH
    return RiskLevel.CRITICAL


def _timestamps(transactions: Sequence[Transaction]) -> List[int]:
    return sorted((t.timestamp for t in transactions if t.timestamp), reverse=True)


def _intervals(transactions: Sequence[Transaction]) -> List[int]:
    ts = _timestamps(transactions)
    return [ts[i - 1] - ts[i] for i in range(1, len(ts))]


def _total_value(transactions: Sequence[Transaction]) -> Decimal:
    return sum((t.value for t in transactions), Decimal("0"))


def is_burst(transactions: Sequence[Transaction]) -> bool:
    gaps = _intervals(transactions)
    return len(gaps) + 1 >= BURST_MIN_TXS and mean(gaps) < BURST_MAX_MEAN_INTERVAL_SEC


def is_regular_cadence(transactions: Sequence[Transaction]) -> bool:
    gaps = _intervals(transactions)
    if len(gaps) + 1 < CADENCE_MIN_TXS:
        return False
    avg = mean(gaps)
    if avg <= 0:
        return False
    return pstdev(gaps) / avg < CADENCE_MAX_CV


def _first_seen(wallet: WalletInfo, transactions: Sequence[Transaction]) -> Optional[int]:
    if wallet.first_seen:
        return wallet.first_seen
    ts = _timestamps(transactions)
    return ts[-1] if ts else None


def classify(
    wallet: WalletInfo,
    labels: ThreatLabels,
    transactions: Sequence[Transaction] = (),
    now_ts: Optional[int] = None,
) -> RiskAssessment:
    """
    Heuristic risk score for one wallet.

    Pure function: no I/O and no clock; pass now_ts to enable the
    wallet-age rules.
    """
    tags: List[str] = []

    if wallet.is_ransomware or labels.is_ransomware:
        tags.append("ransomware")
    if wallet.is_mixer or labels.is_mixer:
        tags.append("mixer")
    if labels.is_darknet:
        tags.append("darknet_market")
    if labels.sanctioned:
        tags.append("sanctioned")
    if labels.abuse_reports > ABUSE_REPORT_THRESHOLD:
        tags.append("abuse_reports")
    burst = is_burst(transactions)
    if labels.suspicious or burst:
        tags.append("suspicious_pattern")

    first = _first_seen(wallet, transactions)
    if now_ts is not None and first:
        age_days = (now_ts - first) / DAY
        if age_days < NEW_WALLET_DAYS:
            tags.append("new_wallet")
        elif age_days > LONG_HISTORY_DAYS:
            tags.append("long_history")

    volume = wallet.total_received + wallet.total_sent
    if volume == 0:
        volume = _total_value(transactions)
    if volume > HIGH_VOLUME_THRESHOLD:
        tags.append("high_volume")

    if wallet.is_exchange or labels.is_exchange:
        tags.append("known_exchange")
    # an even burst is not a healthy cadence
    if not burst and is_regular_cadence(transactions):
        tags.append("regular_cadence")
    if labels.verified:
        tags.append("verified_entity")

    positive = sum(RISK_WEIGHTS[t] for t in tags if RISK_WEIGHTS[t] > 0)
    negative = sum(RISK_WEIGHTS[t] for t in tags if RISK_WEIGHTS[t] < 0)
    if "ransomware" in tags:
        positive = max(positive, KNOWN_THREAT_FLOOR)

    score = max(0, min(100, positive + negative))
    return RiskAssessment(
        risk_score=score,
        risk_level=level_from_score(score),
        tags=tuple(tags),
        factors=tuple(RISK_FACTOR_TEXT[t] for t in tags),
    )


def apply_assessment(wallet: WalletInfo, labels: ThreatLabels, assessment: RiskAssessment) -> WalletInfo:
    """Fresh WalletInfo carrying the label flags and the assessment."""
    merged = list(wallet.labels)
    merged.extend(l for l in labels.labels if l not in merged)
    return replace(
        wallet,
        labels=tuple(merged),
        is_exchange=wallet.is_exchange or labels.is_exchange,
        is_mixer=wallet.is_mixer or labels.is_mixer,
        is_ransomware=wallet.is_ransomware or labels.is_ransomware,
        risk_score=assessment.risk_score,
        risk_level=assessment.risk_level,
    )


# -------------------------
# Descriptive analysis
# -------------------------

def behavior_pattern(transactions: Sequence[Transaction]) -> str:
    if not transactions:
        return "No transaction history"

    frequency = len(transactions)
    avg_value = _total_value(transactions) / frequency

    if frequency > 100 and avg_value > 1:
        return "High-frequency, high-value transactions - Possible exchange or business"
    if frequency > 50:
        return "Active wallet with regular transactions"
    if frequency < 10:
        return "Low activity wallet - Possibly dormant or new"
    return "Normal transaction pattern"


def volume_analysis(transactions: Sequence[Transaction]) -> str:
    if not transactions:
        return "No volume data"

    total = _total_value(transactions)
    if total > 1000:
        return "Very high volume - Major player or institutional"
    if total > 100:
        return "High volume - Active trader or business"
    if total > 10:
        return "Moderate volume - Regular user"
    return "Low volume - Casual user"


def frequency_analysis(transactions: Sequence[Transaction]) -> str:
    gaps = _intervals(transactions)
    if not gaps:
        return "Insufficient data"

    days = mean(gaps) / DAY
    if days < 1:
        return "Multiple transactions per day - Very active"
    if days < 7:
        return "Weekly transaction pattern"
    if days < 30:
        return "Monthly transaction pattern"
    return "Infrequent transactions"


def risk_factors(
    wallet: WalletInfo,
    assessment: RiskAssessment,
    transactions: Sequence[Transaction],
) -> List[str]:
    factors = list(assessment.factors)
    if wallet.balance > 100:
        factors.append("High balance - attractive target")
    if len(transactions) > 100:
        factors.append("High transaction count")
    return factors


def recommendations(
    wallet: WalletInfo,
    labels: ThreatLabels,
    transactions: Sequence[Transaction],
) -> List[str]:
    out: List[str] = []
    if wallet.risk_score > 70:
        out.append("High risk - Investigate further before interaction")
    if wallet.is_mixer:
        out.append("Avoid direct transactions - potential money laundering")
    if wallet.is_ransomware:
        out.append("Report to authorities - known criminal activity")
    if labels.sanctioned:
        out.append("Sanctioned address - interaction may be prohibited")
    if not transactions:
        out.append("New or unused wallet - verify legitimacy")
    return out
