"""
LINK_ACCOUNTS processor tests.
"""

from unittest.mock import Mock

import pytest

from pricewatch.database.models import (
    NotificationType,
    Subscription,
    UserOrigin,
    create_link_accounts_action,
    create_product,
)
from pricewatch.processors.link_accounts import LinkAccountsProcessor


@pytest.fixture
def telegram():
    return Mock()


@pytest.fixture
def processor(repos, telegram):
    return LinkAccountsProcessor(
        repos["action"],
        repos["user"],
        repos["subscription"],
        notification_repo=repos["notification"],
        telegram=telegram,
    )


@pytest.fixture
def products(repos):
    return [
        repos["product"].create(
            create_product(id=f"B00000000{i}", title=f"P{i}", price=10.0, full_price=10.0)
        )
        for i in range(3)
    ]


def _is_processed(repos, action) -> bool:
    return repos["action"].find_by_id(action.id).is_processed


class TestLinkAccounts:
    """Test merging a Telegram user into a site user."""

    def test_merge(self, processor, repos, telegram, telegram_user, site_user, products):
        """Should move subscriptions, copy identity and delete the Telegram user."""
        subs = repos["subscription"]
        subs.create(Subscription(product_id=products[0].id, user_id=site_user.id))
        subs.create(Subscription(product_id=products[0].id, user_id=telegram_user.id))
        subs.create(
            Subscription(product_id=products[1].id, user_id=telegram_user.id, desired_price=5.0)
        )
        action = repos["action"].create(
            create_link_accounts_action(site_user.id, telegram_user.telegram_id)
        )

        processor.process(action)

        assert _is_processed(repos, action)
        assert repos["user"].find_by_id(telegram_user.id) is None

        linked = repos["user"].find_by_id(site_user.id)
        assert linked.telegram_id == "1001"
        assert linked.username == "alice"
        assert linked.origin == UserOrigin.BOTH

        moved = {s.product_id: s for s in subs.find_by_user_id(site_user.id)}
        assert set(moved) == {products[0].id, products[1].id}
        assert moved[products[1].id].desired_price == 5.0

        notifications = repos["notification"].find_by_user_id(site_user.id)
        assert [n.type for n in notifications] == [NotificationType.ACCOUNT_LINKED]

        chat_id, message = telegram.send_message.call_args.args
        assert chat_id == "1001"
        assert "1 product" in message

    def test_missing_telegram_user(self, processor, repos, telegram, site_user):
        """Should drop links to unknown Telegram ids."""
        action = repos["action"].create(create_link_accounts_action(site_user.id, "9999"))

        processor.process(action)

        assert _is_processed(repos, action)
        telegram.send_message.assert_not_called()

    def test_same_user(self, processor, repos, telegram_user):
        """Should drop links of a user to itself."""
        action = repos["action"].create(
            create_link_accounts_action(telegram_user.id, telegram_user.telegram_id)
        )

        processor.process(action)

        assert _is_processed(repos, action)
        assert repos["user"].find_by_id(telegram_user.id) is not None

    def test_failure_leaves_pending(self, processor, repos, telegram, telegram_user, site_user):
        """Should retry later when the confirmation cannot be sent."""
        telegram.send_message.side_effect = RuntimeError("telegram down")
        action = repos["action"].create(
            create_link_accounts_action(site_user.id, telegram_user.telegram_id)
        )

        processor.process(action)

        assert not _is_processed(repos, action)
