from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional

from walletgraph.config import settings
from walletgraph.core.dto import ThreatLabels
from walletgraph.ports.threat_label_port import ThreatLabelPort


class StaticThreatLabelAdapter(ThreatLabelPort):
    """
    Threat labels from an in-memory dataset keyed by address.

    Entries look like {"labels": [...], "is_mixer": true, "abuse_reports": 12}.
    EVM keys are matched case-insensitively.
    """

    def __init__(self, dataset: Optional[Dict[str, Dict[str, Any]]] = None) -> None:
        source = settings.KNOWN_THREAT_LABELS if dataset is None else dataset
        self._dataset = {self._key(k): v for k, v in source.items()}

    @classmethod
    def from_file(cls, path: str, include_builtin: bool = True) -> "StaticThreatLabelAdapter":
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        merged = dict(settings.KNOWN_THREAT_LABELS) if include_builtin else {}
        merged.update(data)
        return cls(merged)

    @staticmethod
    def _key(address: str) -> str:
        addr = address.strip()
        return addr.lower() if addr.lower().startswith("0x") else addr

    def classify_address(self, address: str) -> ThreatLabels:
        entry = self._dataset.get(self._key(address))
        if not entry:
            return ThreatLabels(address=address)
        return ThreatLabels(
            address=address,
            labels=tuple(entry.get("labels") or ()),
            is_exchange=bool(entry.get("is_exchange", False)),
            is_mixer=bool(entry.get("is_mixer", False)),
            is_ransomware=bool(entry.get("is_ransomware", False)),
            is_darknet=bool(entry.get("is_darknet", False)),
            sanctioned=bool(entry.get("sanctioned", False)),
            verified=bool(entry.get("verified", False)),
            suspicious=bool(entry.get("suspicious", False)),
            abuse_reports=int(entry.get("abuse_reports", 0)),
        )


__all__ = ["StaticThreatLabelAdapter"]
