from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

import requests
import structlog

from walletgraph.adapters.ledger.rate_limiter import SimpleRateLimiter, backoff_sleep
from walletgraph.config import settings
from walletgraph.core.errors import NotFoundError, ProviderError, RateLimitError
from walletgraph.ports.ledger_provider_port import LedgerProviderPort

logger = structlog.get_logger(__name__)


class HttpLedgerProvider(LedgerProviderPort):
    """
    Shared plumbing for JSON explorer APIs: session, rate limit, retries.

    404 is final (NotFoundError); 429, 5xx, timeouts and bad JSON are
    retried with backoff and end in ProviderError.
    """

    name = "http"

    def __init__(
        self,
        base_url: str,
        requests_per_sec: float,
        timeout_sec: int = settings.PROVIDER_TIMEOUT_SEC,
        max_retries: int = settings.PROVIDER_MAX_RETRIES,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_sec
        self._max_retries = max(1, int(max_retries))
        self._rl = SimpleRateLimiter(requests_per_sec)
        self._session = session or requests.Session()
        self._session.headers.setdefault("User-Agent", settings.USER_AGENT)

    # ---------- internal ----------

    def _call(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self._base_url}/{path.lstrip('/')}" if path else self._base_url
        last_err: Optional[Exception] = None

        for attempt in range(self._max_retries):
            try:
                self._rl.wait()
                resp = self._session.get(url, params=params, timeout=self._timeout)
                if resp.status_code == 404:
                    raise NotFoundError(f"{self.name}: not found ({url})")
                if resp.status_code == 429:
                    raise RateLimitError(f"{self.name}: rate limited", provider=self.name)
                resp.raise_for_status()
                data = resp.json()
                self._check_body(data)
                return data

            except NotFoundError:
                raise
            except (requests.RequestException, ValueError, ProviderError) as e:
                last_err = e
                logger.debug("provider_retry", provider=self.name, attempt=attempt, error=str(e))
                if attempt + 1 < self._max_retries:
                    backoff_sleep(attempt)

        raise ProviderError(f"{self.name} failed after retries: {last_err}", provider=self.name)

    def _check_body(self, data: Any) -> None:
        """Hook for APIs that report errors inside a 200 response."""


# ---------- normalization helpers ----------

def to_decimal(val: Any, default: Decimal = Decimal("0")) -> Decimal:
    if val is None or val == "":
        return default
    try:
        return Decimal(str(val))
    except (InvalidOperation, ValueError):
        return default


def to_int(val: Any, default: int = 0) -> int:
    if val is None or val == "":
        return default
    try:
        return int(val)
    except (TypeError, ValueError):
        try:
            return int(Decimal(str(val)))
        except (InvalidOperation, ValueError):
            return default


def minor_to_base(val: Any, decimals: int) -> Decimal:
    return to_decimal(val) / (Decimal(10) ** decimals)


def missing(data: Dict[str, Any], *keys: str) -> List[str]:
    return [k for k in keys if data.get(k) is None]
