"""
Catalog lookup interface.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


class CatalogError(Exception):
    """Raised when the catalog cannot be queried."""

    pass


@dataclass
class CatalogProduct:
    """Product data as returned by the catalog."""

    offer_id: str
    title: str
    full_price: float
    current_price: float
    in_stock: bool
    image_url: str
    is_preorder: bool
    url: str = ""
    product_group: Optional[str] = None


class CatalogLookup(ABC):
    """Batch lookup of products by catalog identifier."""

    @abstractmethod
    def get_products(self, product_ids: list[str]) -> dict[str, CatalogProduct]:
        """
        Fetch product data for several identifiers in one call.

        Args:
            product_ids: Catalog identifiers (ASINs)

        Returns:
            Mapping of identifier to product data. Identifiers the catalog
            does not know are left out of the mapping.

        Raises:
            CatalogError: If the catalog could not be queried
        """
        pass

    def get_product(self, product_id: str) -> Optional[CatalogProduct]:
        """Fetch a single product, None if the catalog does not know it."""
        return self.get_products([product_id]).get(product_id)
