from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests
from requests.exceptions import ConnectionError, ReadTimeout


@dataclass
class HTTPClient:
    """
    Thin ``requests.Session`` wrapper.

    Feature lookups are one-shot by default (``tries=1``): callers fall back
    to their cache immediately instead of waiting on backoff.
    """

    user_agent: str
    timeout_s: int = 30
    tries: int = 1
    backoff_s: float = 0.8

    def __post_init__(self) -> None:
        self.s = requests.Session()
        self.s.headers.update(
            {
                "User-Agent": self.user_agent,
                "Accept": "application/json, text/plain;q=0.9, */*;q=0.8",
            }
        )

    def _request(self, method: str, url: str, timeout_s: Optional[int] = None, **kwargs) -> requests.Response:
        timeout = timeout_s if timeout_s is not None else self.timeout_s
        last_err: Optional[Exception] = None
        for attempt in range(max(1, self.tries)):
            try:
                r = self.s.request(method, url, timeout=timeout, **kwargs)
                r.raise_for_status()
                return r
            except (ReadTimeout, ConnectionError) as e:
                last_err = e
                if attempt + 1 < self.tries:
                    time.sleep(self.backoff_s * (2**attempt))
        raise last_err if last_err else RuntimeError(f"HTTP {method} failed")

    def get_json(self, url: str, params: Optional[Dict[str, Any]] = None, timeout_s: Optional[int] = None) -> Any:
        return self._request("GET", url, timeout_s=timeout_s, params=params).json()

    def post_json(self, url: str, data: Any, timeout_s: Optional[int] = None) -> Any:
        return self._request("POST", url, timeout_s=timeout_s, data=data).json()
