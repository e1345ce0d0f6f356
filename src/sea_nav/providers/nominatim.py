"""Nominatim free-text place search."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from sea_nav.providers.http import HTTPClient


class NominatimClient:
    def __init__(self, url: Optional[str] = None, http: Optional[HTTPClient] = None):
        from sea_nav.config import settings

        self.url = url or settings.nominatim_url
        self.http = http or HTTPClient(user_agent=settings.user_agent, timeout_s=settings.http_timeout_s)

    def search(self, q: str, limit: int = 20) -> List[Dict[str, Any]]:
        data = self.http.get_json(
            self.url,
            params={"q": q, "format": "json", "limit": limit, "addressdetails": 1},
        )
        return data if isinstance(data, list) else []
