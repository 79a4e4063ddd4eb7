"""
HTTP catalog client.
"""

import logging
import time
from typing import Any, Optional

import requests

from .base import CatalogError, CatalogLookup, CatalogProduct

logger = logging.getLogger(__name__)


class HttpCatalogClient(CatalogLookup):
    """Looks products up through a JSON product-information endpoint."""

    def __init__(
        self,
        endpoint: str,
        api_key: Optional[str] = None,
        marketplace: str = "www.amazon.com.br",
        max_batch_size: int = 10,
        timeout: float = 10,
        max_retries: int = 3,
        retry_delay: float = 1.0,
    ):
        """
        Initialize catalog client.

        Args:
            endpoint: URL accepting a POST with the identifiers to look up
            api_key: Bearer token sent with each request
            marketplace: Marketplace the prices are read from
            max_batch_size: Identifiers per request (the API limit)
            timeout: Request timeout in seconds
            max_retries: Attempts per request on connection errors
            retry_delay: Seconds between attempts
        """
        self.endpoint = endpoint
        self.api_key = api_key
        self.marketplace = marketplace
        self.max_batch_size = max_batch_size
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    def get_products(self, product_ids: list[str]) -> dict[str, CatalogProduct]:
        logger.info(f"Looking up {len(product_ids)} products in the catalog")

        results: dict[str, CatalogProduct] = {}
        for start in range(0, len(product_ids), self.max_batch_size):
            chunk = product_ids[start:start + self.max_batch_size]
            results.update(self._fetch_chunk(chunk))
        return results

    def _fetch_chunk(self, product_ids: list[str]) -> dict[str, CatalogProduct]:
        payload = {"item_ids": product_ids, "marketplace": self.marketplace}
        response = self._post(payload)

        if not response.ok:
            raise CatalogError(f"HTTP {response.status_code}: {response.text}")

        try:
            body = response.json()
        except ValueError as e:
            raise CatalogError(f"Invalid catalog response: {e}") from e

        results = {}
        for item in body.get("items") or []:
            product_id = item.get("id")
            if not product_id:
                continue
            try:
                results[product_id] = self._parse_item(item)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed catalog item {product_id}: {e}")
        return results

    def _post(self, payload: dict[str, Any]) -> requests.Response:
        """Send request, retrying on connection errors."""
        headers = {}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        last_error: Optional[Exception] = None
        for attempt in range(1, self.max_retries + 1):
            try:
                return requests.post(
                    self.endpoint,
                    json=payload,
                    headers=headers,
                    timeout=self.timeout,
                )
            except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
                last_error = e
                logger.warning(
                    f"Catalog request attempt {attempt}/{self.max_retries} failed: {e}"
                )
                if attempt < self.max_retries:
                    time.sleep(self.retry_delay)

        raise CatalogError(f"Catalog unreachable: {last_error}") from last_error

    def _parse_item(self, item: dict[str, Any]) -> CatalogProduct:
        """Convert a response item to CatalogProduct."""
        current_price = float(item["current_price"])
        return CatalogProduct(
            offer_id=item.get("offer_id", ""),
            title=item.get("title", ""),
            full_price=float(item.get("full_price", current_price)),
            current_price=current_price,
            in_stock=bool(item.get("in_stock", True)),
            image_url=item.get("image_url", ""),
            is_preorder=bool(item.get("is_preorder", False)),
            url=item.get("url", ""),
            product_group=item.get("product_group"),
        )
