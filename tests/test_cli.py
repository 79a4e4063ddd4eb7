"""
CLI helper tests.
"""

import argparse

import pytest

from pricewatch.cli import (
    _action_type,
    add_user,
    check_product,
    enqueue_add_product,
    set_action_config,
)
from pricewatch.config import AppConfig
from pricewatch.database.models import ActionOrigin, ActionType
from pricewatch.database.repository import ActionConfigRepository, ProductRepository


def test_add_user(db):
    user = add_user(db, telegram_id="1001", enabled=True)

    assert user.id
    assert user.telegram_id == "1001"
    assert user.enabled


def test_enqueue_add_product(db):
    user = add_user(db, user_id="u1")

    action = enqueue_add_product(db, user.id, "https://amzn.to/x", ActionOrigin.SITE)

    assert action.type == ActionType.ADD_PRODUCT
    assert action.origin == ActionOrigin.SITE
    assert not action.is_processed


def test_check_product(db, stored_product):
    """Should refresh the product from the catalog right away."""
    action = check_product(db, AppConfig(), stored_product.id)

    assert action.is_processed
    refreshed = ProductRepository(db).find_by_id(stored_product.id)
    assert refreshed.offer_id == f"mock-offer-{stored_product.id}"


def test_set_action_config(db):
    set_action_config(db, ActionType.CHECK_PRODUCT, interval_minutes=12)
    set_action_config(db, ActionType.CHECK_PRODUCT, enabled=False)

    stored = ActionConfigRepository(db).find_by_type(ActionType.CHECK_PRODUCT)
    assert stored.interval_minutes == 12
    assert stored.enabled is False


def test_set_action_config_rejects_zero_interval(db):
    with pytest.raises(ValueError):
        set_action_config(db, ActionType.ADD_PRODUCT, interval_minutes=0)


def test_action_type_argument():
    assert _action_type("notify-price") == ActionType.NOTIFY_PRICE
    with pytest.raises(argparse.ArgumentTypeError):
        _action_type("refund")
