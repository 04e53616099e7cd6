"""
Tests for Marketplace Policy
"""

import pytest
from datetime import timedelta

from src.governance.policy_engine import MarketplacePolicy
from tests.factories import NOW


class TestMarketplacePolicy:
    """Test cases for MarketplacePolicy"""

    @pytest.fixture
    def policy(self):
        """Create a MarketplacePolicy from the shipped rules file"""
        return MarketplacePolicy()

    def test_load_policies(self, policy):
        """Test that rules load correctly"""
        assert policy.rules
        assert policy.get_last_loaded_time() is not None
        assert policy.get_policy_version()

    def test_trade_deadlines(self, policy):
        """Test response and shipping deadlines"""
        assert policy.get_response_deadline(NOW) == NOW + timedelta(hours=48)
        assert policy.get_shipping_deadline(NOW) == NOW + timedelta(days=5)
        assert policy.get_trade_auto_confirm_period() == timedelta(days=7)

    def test_trade_limits(self, policy):
        assert policy.get_max_items_per_side() == 10
        assert policy.get_max_cash_amount() == 100000.0
        assert policy.get_dispute_description_max_length() == 1000

    def test_dispute_reasons(self, policy):
        """Test suggested dispute reasons"""
        reasons = policy.get_dispute_reasons()
        assert len(reasons) > 0
        assert all(isinstance(reason, str) for reason in reasons)

    def test_order_auto_confirm(self, policy):
        assert policy.get_order_auto_confirm_period() == timedelta(days=7)

    def test_score_range(self, policy):
        assert policy.get_score_range() == (1, 5)

    @pytest.mark.parametrize("page,page_size,expected", [
        (None, None, (1, 20)),
        (0, 0, (1, 20)),
        (-3, 5, (1, 5)),
        (2, 500, (2, 100)),
        (3, 1, (3, 1)),
    ])
    def test_clamp_pagination(self, policy, page, page_size, expected):
        """Test pagination normalisation"""
        assert policy.clamp_pagination(page, page_size) == expected

    def test_cache_keys(self, policy):
        assert policy.get_product_cache_patterns() == ["products:detail:*", "products:list:*"]
        assert policy.get_product_detail_key("p1") == "products:detail:p1"

    def test_notification_defaults(self, policy):
        assert policy.get_default_channels() == ["email", "in_app"]
        assert policy.get_notification_page_size() == 20

    def test_audit_default_limit(self, policy):
        assert policy.get_audit_default_limit() == 50

    def test_from_dict_uses_defaults(self):
        """Test that missing sections fall back to built-in defaults"""
        policy = MarketplacePolicy.from_dict({"trade": {"response_deadline_hours": 24}})
        assert policy.get_response_deadline(NOW) == NOW + timedelta(hours=24)
        assert policy.get_shipping_deadline(NOW) == NOW + timedelta(days=5)
        assert policy.get_dispute_reasons() == []
        policy.reload_policies()

    def test_missing_rules_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            MarketplacePolicy(str(tmp_path / "missing.yaml"))

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text("trade: [unclosed", encoding="utf-8")
        with pytest.raises(ValueError):
            MarketplacePolicy(str(path))

    def test_reload_policies(self, tmp_path):
        """Test that reload picks up edits"""
        path = tmp_path / "rules.yaml"
        path.write_text("trade:\n  max_items_per_side: 3\n", encoding="utf-8")
        policy = MarketplacePolicy(str(path))
        assert policy.get_max_items_per_side() == 3

        path.write_text("trade:\n  max_items_per_side: 4\n", encoding="utf-8")
        policy.reload_policies()
        assert policy.get_max_items_per_side() == 4
