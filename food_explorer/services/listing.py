from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from food_explorer.constants import CATEGORY_ALL, LOAD_ERROR_MESSAGE
from food_explorer.services.catalog import CatalogClient, CatalogError, SearchResponse

logger = logging.getLogger(__name__)


def sort_products(products: List[Dict[str, Any]], option: str) -> List[Dict[str, Any]]:
    if option in ("name-asc", "name-desc"):
        return sorted(
            products,
            key=lambda p: (p.get("product_name") or "").casefold(),
            reverse=option == "name-desc",
        )
    # products without a grade go last in both directions
    if option == "grade-asc":
        return sorted(products, key=lambda p: (not p.get("nutrition_grades"), (p.get("nutrition_grades") or "").lower()))
    if option == "grade-desc":
        return sorted(
            products,
            key=lambda p: (bool(p.get("nutrition_grades")), (p.get("nutrition_grades") or "").lower()),
            reverse=True,
        )
    if option in ("created-asc", "created-desc"):
        return sorted(products, key=lambda p: p.get("created_t") or 0, reverse=option == "created-desc")
    # popularity is the API's own order
    return list(products)


class CatalogListing:
    """Product list behind the catalog page: search / category, load more, sort.

    Every load takes a generation token; a response that arrives after a newer
    reload() started is dropped instead of overwriting the newer results.
    """

    def __init__(self, client: CatalogClient, page_size: Optional[int] = None) -> None:
        self.client = client
        self.page_size = page_size or client.page_size
        self.term = ""
        self.category = CATEGORY_ALL
        self.products: List[Dict[str, Any]] = []
        self.page = 1
        self.has_more = False
        self.total_count = 0
        self.error: Optional[str] = None
        self.loaded = False
        self.categories: List[str] = []
        self._generation = 0

    async def _fetch(self, page: int) -> SearchResponse:
        if self.term:
            return await self.client.search_products(self.term, page, self.page_size)
        if self.category != CATEGORY_ALL:
            return await self.client.get_products_by_category(self.category, page)
        return await self.client.search_products("", page, self.page_size)

    def _is_current(self, token: int) -> bool:
        if token != self._generation:
            logger.debug("Dropping stale catalog response (token %s, current %s)", token, self._generation)
            return False
        return True

    async def load_categories(self) -> List[str]:
        if not self.categories:
            self.categories = await self.client.get_categories()
        return self.categories

    async def ensure(self, term: str = "", category: str = CATEGORY_ALL) -> None:
        term = (term or "").strip()
        category = category or CATEGORY_ALL
        if not self.loaded or term != self.term or category != self.category:
            await self.reload(term, category)

    async def reload(self, term: str = "", category: str = CATEGORY_ALL) -> bool:
        self.term = (term or "").strip()
        self.category = category or CATEGORY_ALL
        self._generation += 1
        token = self._generation
        self.page = 1
        self.error = None

        try:
            response = await self._fetch(1)
        except CatalogError:
            if not self._is_current(token):
                return False
            logger.warning("Catalog load failed (term=%r, category=%r)", self.term, self.category, exc_info=True)
            self.products = []
            self.total_count = 0
            self.has_more = False
            self.error = LOAD_ERROR_MESSAGE
            self.loaded = True
            return False

        if not self._is_current(token):
            return False
        self.products = list(response.products)
        self.total_count = response.count
        self.has_more = response.raw_count == self.page_size
        self.loaded = True
        return True

    async def load_more(self) -> bool:
        token = self._generation
        self.page += 1
        self.error = None

        try:
            response = await self._fetch(self.page)
        except CatalogError:
            if not self._is_current(token):
                return False
            logger.warning("Catalog load_more failed at page %s", self.page, exc_info=True)
            self.has_more = False
            self.error = LOAD_ERROR_MESSAGE
            return False

        if not self._is_current(token):
            return False
        seen = {p.get("code") for p in self.products}
        for p in response.products:
            if p.get("code") not in seen:
                seen.add(p.get("code"))
                self.products.append(p)
        self.has_more = response.raw_count == self.page_size
        return True

    def sorted_products(self, option: str) -> List[Dict[str, Any]]:
        return sort_products(self.products, option)
