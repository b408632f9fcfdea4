"""
Open Food Facts client.

Read-only: text search, category listing, barcode lookup and the category list.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from food_explorer.config import settings
from food_explorer.constants import FALLBACK_CATEGORIES, MAX_CATEGORIES

logger = logging.getLogger(__name__)


class CatalogError(Exception):
    pass


@dataclass
class SearchResponse:
    products: List[Dict[str, Any]] = field(default_factory=list)
    count: int = 0
    page: int = 1
    page_size: int = 0
    # length of the page as the API sent it, before products without a code are dropped
    raw_count: int = 0


def _as_int(v: Any, default: int) -> int:
    try:
        return int(v)
    except (TypeError, ValueError):
        return default


def normalize_search_response(data: Dict[str, Any], page: int, page_size: int) -> SearchResponse:
    # OFF returns count/page as strings on some endpoints
    raw = data.get("products") or []
    products = [p for p in raw if isinstance(p, dict) and p.get("code")]
    return SearchResponse(
        products=products,
        raw_count=len(raw),
        count=_as_int(data.get("count"), len(products)),
        page=_as_int(data.get("page"), page),
        page_size=_as_int(data.get("page_size"), page_size),
    )


class CatalogClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        page_size: Optional[int] = None,
        timeout_seconds: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = (base_url or settings.catalog_base_url).rstrip("/")
        self.page_size = page_size or settings.catalog_page_size
        self.timeout_seconds = timeout_seconds or settings.catalog_timeout
        self._transport = transport

    async def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
                response = await client.get(url, params=params)
                response.raise_for_status()
                data = response.json() if response.content else {}
        except (httpx.HTTPError, ValueError) as e:
            raise CatalogError(f"GET {url} failed: {e}") from e
        if not isinstance(data, dict):
            raise CatalogError(f"GET {url} returned unexpected payload")
        return data

    async def search_products(self, term: str, page: int = 1, page_size: Optional[int] = None) -> SearchResponse:
        size = page_size or self.page_size
        params = {"search_terms": term, "page": page, "page_size": size, "json": "true"}
        data = await self._get_json("/cgi/search.pl", params=params)
        return normalize_search_response(data, page, size)

    async def get_products_by_category(self, category: str, page: int = 1) -> SearchResponse:
        data = await self._get_json(f"/category/{quote(category, safe='')}/{page}.json")
        return normalize_search_response(data, page, self.page_size)

    async def get_product_by_barcode(self, barcode: str) -> Optional[Dict[str, Any]]:
        data = await self._get_json(f"/api/v0/product/{quote(barcode.strip(), safe='')}.json")
        product = data.get("product")
        if not isinstance(product, dict) or not data.get("status", 1):
            return None
        product.setdefault("code", data.get("code") or barcode.strip())
        return product

    async def get_categories(self) -> List[str]:
        try:
            data = await self._get_json("/categories.json")
        except CatalogError:
            logger.warning("Failed to fetch categories, using fallback list", exc_info=True)
            return list(FALLBACK_CATEGORIES)

        categories = []
        for tag in data.get("tags") or []:
            if not isinstance(tag, dict):
                continue
            value = str(tag.get("id") or tag.get("name") or "").lower()
            if value:
                categories.append(value)
        if not categories:
            logger.warning("Category list came back empty, using fallback list")
            return list(FALLBACK_CATEGORIES)
        return categories[:MAX_CATEGORIES]
