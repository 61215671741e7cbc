from __future__ import annotations

import re

from walletgraph.core.enums import Network
from walletgraph.core.errors import ValidationError


_ADDRESS_PATTERNS = {
    Network.BITCOIN: (
        re.compile(r"^[13][a-km-zA-HJ-NP-Z1-9]{25,34}$"),
        re.compile(r"^bc1[a-z0-9]{39,59}$"),
    ),
    Network.ETHEREUM: (re.compile(r"^0x[a-fA-F0-9]{40}$"),),
    Network.TRON: (re.compile(r"^T[A-Za-z1-9]{33}$"),),
    Network.LITECOIN: (
        re.compile(r"^[LM][a-km-zA-HJ-NP-Z1-9]{26,33}$"),
        re.compile(r"^ltc1[a-z0-9]{39,59}$"),
    ),
}

_HEX64 = re.compile(r"^[a-fA-F0-9]{64}$")
_HEX64_0X = re.compile(r"^0x[a-fA-F0-9]{64}$")


def detect_network(address: str) -> Network:
    trimmed = (address or "").strip()
    for network, patterns in _ADDRESS_PATTERNS.items():
        if any(p.match(trimmed) for p in patterns):
            return network
    return Network.UNKNOWN


def parse_network(raw) -> Network:
    if isinstance(raw, Network):
        return raw
    try:
        return Network(str(raw).strip().lower())
    except ValueError as e:
        raise ValidationError(f"Unsupported network: {raw!r}") from e


def normalize_address(address: str, network: Network) -> str:
    addr = (address or "").strip()
    # EVM addresses are case-insensitive (checksum casing only)
    if network == Network.ETHEREUM:
        return addr.lower()
    return addr


def validate_address(address: str, network: Network) -> str:
    """Return the normalized address or raise ValidationError."""
    if network == Network.UNKNOWN:
        raise ValidationError(f"Could not detect blockchain network for {address!r}")
    addr = (address or "").strip()
    patterns = _ADDRESS_PATTERNS.get(network, ())
    if not any(p.match(addr) for p in patterns):
        raise ValidationError(f"Invalid {network.value} address: {address!r}")
    return normalize_address(addr, network)


def validate_tx_hash(tx_hash: str, network: Network) -> str:
    h = (tx_hash or "").strip()
    if network in (Network.BITCOIN, Network.LITECOIN):
        ok = bool(_HEX64.match(h))
    elif network == Network.ETHEREUM:
        ok = bool(_HEX64_0X.match(h))
        h = h.lower()
    elif network == Network.TRON:
        # Tronscan hashes are bare hex; accept the 0x form too
        ok = bool(_HEX64.match(h) or _HEX64_0X.match(h))
        h = h[2:] if h.startswith("0x") else h
    else:
        ok = False
    if not ok:
        raise ValidationError(f"Invalid transaction hash format for {network.value}: {tx_hash!r}")
    return h
