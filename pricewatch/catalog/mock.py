"""
In-memory catalog for development and tests.
"""

from typing import Optional

from .base import CatalogLookup, CatalogProduct


class MockCatalogClient(CatalogLookup):
    """Serves products from a dict, optionally inventing unknown ones."""

    def __init__(
        self,
        products: Optional[dict[str, CatalogProduct]] = None,
        generate_unknown: bool = False,
    ):
        """
        Initialize mock catalog.

        Args:
            products: Known products keyed by identifier
            generate_unknown: Whether unknown identifiers get a generated product
        """
        self.products: dict[str, CatalogProduct] = dict(products or {})
        self.generate_unknown = generate_unknown
        self.calls: list[list[str]] = []

    def get_products(self, product_ids: list[str]) -> dict[str, CatalogProduct]:
        self.calls.append(list(product_ids))

        results = {}
        for product_id in product_ids:
            product = self.products.get(product_id)
            if product is None and self.generate_unknown:
                product = self._generate_product(product_id)
                self.products[product_id] = product
            if product is not None:
                results[product_id] = product
        return results

    def add_product(self, product_id: str, product: CatalogProduct) -> None:
        self.products[product_id] = product

    def simulate_price_change(self, product_id: str, new_price: float) -> None:
        """Change the current price of a known product."""
        product = self.products.get(product_id)
        if product:
            product.current_price = new_price

    def _generate_product(self, product_id: str) -> CatalogProduct:
        """Build a stable product from the identifier's characters."""
        seed = sum(ord(c) for c in product_id)
        full_price = float(50 + seed % 150)
        discount = float(seed % 30) if seed % 3 == 0 else 0.0

        return CatalogProduct(
            offer_id=f"mock-offer-{product_id}",
            title=f"Mock product {product_id}",
            full_price=full_price,
            current_price=full_price - discount,
            in_stock=seed % 10 != 0,
            image_url=f"https://example.com/{product_id}.jpg",
            is_preorder=seed % 10 == 1,
            url=f"https://www.amazon.com.br/dp/{product_id}",
            product_group="Book",
        )
