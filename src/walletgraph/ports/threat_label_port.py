from __future__ import annotations

from abc import ABC, abstractmethod

from walletgraph.core.dto import ThreatLabels


class ThreatLabelPort(ABC):
    @abstractmethod
    def classify_address(self, address: str) -> ThreatLabels:
        raise NotImplementedError
