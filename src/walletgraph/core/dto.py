from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional, Tuple

from walletgraph.core.enums import Network, RiskLevel, TxStatus


UNKNOWN_ADDRESS = "unknown"


@dataclass(frozen=True)
class WalletInfo:
    address: str
    network: Network
    balance: Decimal = Decimal("0")             # network base unit (BTC, ETH, TRX, LTC)
    total_received: Decimal = Decimal("0")
    total_sent: Decimal = Decimal("0")
    balance_usd: Optional[Decimal] = None
    transaction_count: int = 0
    first_seen: Optional[int] = None            # unix seconds
    last_seen: Optional[int] = None
    labels: Tuple[str, ...] = ()
    is_exchange: bool = False
    is_mixer: bool = False
    is_ransomware: bool = False
    risk_score: int = 0
    risk_level: RiskLevel = RiskLevel.SAFE
    provider: str = ""
    missing_fields: Tuple[str, ...] = ()


@dataclass(frozen=True)
class TxInput:
    address: str
    value: Decimal


@dataclass(frozen=True)
class TxOutput:
    address: str
    value: Decimal
    spent: bool = False


@dataclass(frozen=True)
class Transaction:
    tx_hash: str
    timestamp: int
    inputs: Tuple[TxInput, ...] = ()
    outputs: Tuple[TxOutput, ...] = ()
    block_number: int = 0
    block_hash: str = ""
    fee: Decimal = Decimal("0")
    status: TxStatus = TxStatus.CONFIRMED
    provider: str = ""
    missing_fields: Tuple[str, ...] = ()

    @property
    def value(self) -> Decimal:
        return sum((o.value for o in self.outputs), Decimal("0"))

    def counterparties(self, focus: str) -> Tuple[str, ...]:
        """Distinct input/output addresses other than `focus`, in input-then-output order."""
        seen = []
        for addr in [i.address for i in self.inputs] + [o.address for o in self.outputs]:
            if not addr or addr == UNKNOWN_ADDRESS or addr == focus:
                continue
            if addr not in seen:
                seen.append(addr)
        return tuple(seen)


@dataclass(frozen=True)
class ThreatLabels:
    """
    Known-threat facts for one address, as returned by a threat label lookup.
    """

    address: str
    labels: Tuple[str, ...] = ()
    is_exchange: bool = False
    is_mixer: bool = False
    is_ransomware: bool = False
    is_darknet: bool = False
    sanctioned: bool = False
    verified: bool = False
    suspicious: bool = False
    abuse_reports: int = 0


@dataclass(frozen=True)
class RiskAssessment:
    risk_score: int
    risk_level: RiskLevel
    tags: Tuple[str, ...] = field(default_factory=tuple)
    factors: Tuple[str, ...] = field(default_factory=tuple)
