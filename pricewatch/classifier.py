"""
Product classification interface.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class Classification:
    """Category and main genre inferred from a product title."""

    category: str  # HQ, Manga or Book
    genre: str


class ProductClassifier(ABC):
    """Classifies products from their title."""

    @abstractmethod
    def classify(self, title: str) -> Optional[Classification]:
        """
        Classify a product.

        Args:
            title: Product title

        Returns:
            Classification, or None if the title could not be classified
        """
        pass
