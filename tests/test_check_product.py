"""
CHECK_PRODUCT processor tests.
"""

from unittest.mock import Mock

import pytest

from pricewatch.catalog.base import CatalogError
from pricewatch.database.models import (
    ActionType,
    create_check_product_action,
    create_product,
)
from pricewatch.processors.check_product import CheckProductProcessor

PRODUCT_ID = "B012345678"


@pytest.fixture
def processor(repos, catalog, stats_service):
    return CheckProductProcessor(
        repos["action"],
        repos["product"],
        catalog,
        stats_service=stats_service,
    )


class TestCheckProductNext:
    """Test periodic product refresh."""

    def test_price_drop(self, processor, repos, stored_product, catalog):
        """Should update prices, record stats and queue one alert."""
        catalog.simulate_price_change(PRODUCT_ID, 80.0)

        count = processor.process_next(10)

        assert count == 1
        product = repos["product"].find_by_id(PRODUCT_ID)
        assert product.price == 80.0
        assert product.old_price == 100.0

        notify = repos["action"].find_pending_by_type(ActionType.NOTIFY_PRICE, 10)
        assert len(notify) == 1
        assert notify[0].value == PRODUCT_ID

        stats = repos["stats"].find_by_product_id(PRODUCT_ID)
        assert len(stats) == 1
        assert stats[0].percentage_change == pytest.approx(20.0)

    def test_unchanged_price(self, processor, repos, stored_product):
        """Should update without alerting when the price holds."""
        assert processor.process_next(10) == 1

        assert repos["action"].find_pending_by_type(ActionType.NOTIFY_PRICE, 10) == []
        assert repos["stats"].find_by_product_id(PRODUCT_ID) == []

    def test_price_increase(self, processor, repos, stored_product, catalog):
        """Should update without alerting when the price goes up."""
        catalog.simulate_price_change(PRODUCT_ID, 120.0)

        assert processor.process_next(10) == 1

        product = repos["product"].find_by_id(PRODUCT_ID)
        assert product.price == 120.0
        assert repos["action"].find_pending_by_type(ActionType.NOTIFY_PRICE, 10) == []

    def test_small_drop_alerts_without_stats(self, processor, repos, stored_product, catalog):
        """Should alert for any drop but record stats only for big ones."""
        catalog.simulate_price_change(PRODUCT_ID, 98.0)

        processor.process_next(10)

        assert len(repos["action"].find_pending_by_type(ActionType.NOTIFY_PRICE, 10)) == 1
        assert repos["stats"].find_by_product_id(PRODUCT_ID) == []

    def test_copies_catalog_fields(
        self, processor, repos, stored_product, sample_catalog_product
    ):
        """Should copy stock and other catalog fields."""
        sample_catalog_product.in_stock = False
        sample_catalog_product.is_preorder = True
        sample_catalog_product.title = "Sandman Vol. 1 (Deluxe)"

        processor.process_next(10)

        product = repos["product"].find_by_id(PRODUCT_ID)
        assert product.in_stock is False
        assert product.preorder is True
        assert product.title == "Sandman Vol. 1 (Deluxe)"

    def test_no_products(self, processor, catalog):
        """Should return zero without calling the catalog."""
        assert processor.process_next(10) == 0
        assert catalog.calls == []

    def test_missing_from_catalog_skipped(self, processor, repos, stored_product, catalog):
        """Should skip products the catalog did not return."""
        repos["product"].create(
            create_product(id="B999999999", title="Gone", price=10.0, full_price=10.0)
        )

        count = processor.process_next(10)

        assert count == 1
        assert catalog.calls == [["B012345678", "B999999999"]]
        assert repos["product"].find_by_id("B999999999").price == 10.0

    def test_catalog_error_propagates(self, processor, stored_product, catalog):
        """Should let a failed batch lookup reach the caller."""
        catalog.get_products = Mock(side_effect=CatalogError("down"))

        with pytest.raises(CatalogError):
            processor.process_next(10)

    def test_write_failure_isolated(self, processor, repos, stored_product, catalog, caplog):
        """Should keep going when one product fails to save."""
        repos["product"].create(
            create_product(id="B000000001", title="Other", price=10.0, full_price=10.0)
        )
        catalog.generate_unknown = True
        original_update = repos["product"].update

        def failing_update(product):
            if product.id == "B000000001":
                raise RuntimeError("disk full")
            return original_update(product)

        repos["product"].update = failing_update

        count = processor.process_next(10)

        assert count == 1
        assert "Error updating product B000000001" in caplog.text

    def test_stats_failure_ignored(self, repos, stored_product, catalog):
        """Should still alert when stats cannot be written."""
        stats_service = Mock()
        stats_service.handle_price_change.side_effect = RuntimeError("stats down")
        processor = CheckProductProcessor(
            repos["action"], repos["product"], catalog, stats_service=stats_service
        )
        catalog.simulate_price_change(PRODUCT_ID, 80.0)

        assert processor.process_next(10) == 1
        assert len(repos["action"].find_pending_by_type(ActionType.NOTIFY_PRICE, 10)) == 1


class TestCheckProductAction:
    """Test queued CHECK_PRODUCT actions."""

    def test_process_action(self, processor, repos, stored_product, catalog):
        """Should check the named product and mark the action."""
        catalog.simulate_price_change(PRODUCT_ID, 80.0)
        action = repos["action"].create(create_check_product_action(PRODUCT_ID))

        processor.process(action)

        assert repos["action"].find_by_id(action.id).is_processed
        assert repos["product"].find_by_id(PRODUCT_ID).price == 80.0

    def test_unknown_product(self, processor, repos):
        """Should drop actions for unknown products."""
        action = repos["action"].create(create_check_product_action("B999999999"))

        processor.process(action)

        assert repos["action"].find_by_id(action.id).is_processed

    def test_catalog_error_leaves_pending(self, processor, repos, stored_product, catalog):
        """Should retry later when the catalog fails."""
        catalog.get_products = Mock(side_effect=CatalogError("down"))
        action = repos["action"].create(create_check_product_action(PRODUCT_ID))

        processor.process(action)

        assert not repos["action"].find_by_id(action.id).is_processed
