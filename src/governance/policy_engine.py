"""
Policy Engine
Loads and applies configurable marketplace rules from YAML configuration
Deadlines, waiting periods, score ranges and cache keys come from policy, not code
"""

import os
import yaml
from typing import Dict, Any, List, Optional
from pathlib import Path
from datetime import datetime, timedelta, timezone


class MarketplacePolicy:
    """
    Policy engine for trade, order, rating and notification rules
    """

    def __init__(self, rules_path: Optional[str] = None):
        """
        Initialize policy engine with configuration file

        Args:
            rules_path: Path to marketplace_rules.yaml
        """
        if rules_path is None:
            rules_path = os.getenv(
                "MARKETPLACE_RULES_PATH",
                str(Path(__file__).parent.parent.parent / "config" / "marketplace_rules.yaml")
            )

        self.rules_path = rules_path
        self.rules: Dict[str, Any] = {}
        self.policy_version: str = "1.0.0"
        self.last_loaded: Optional[datetime] = None

        self._load_policies()

    @classmethod
    def from_dict(cls, rules: Dict[str, Any]) -> "MarketplacePolicy":
        """Build a policy from an in-memory rules mapping (no file access)"""
        policy = cls.__new__(cls)
        policy.rules_path = None
        policy.rules = rules
        policy.policy_version = rules.get("version", "1.0.0")
        policy.last_loaded = datetime.now(timezone.utc)
        return policy

    def _load_policies(self) -> None:
        """Load policy configuration from YAML file"""
        try:
            with open(self.rules_path, 'r', encoding='utf-8') as f:
                self.rules = yaml.safe_load(f) or {}

            self.last_loaded = datetime.now(timezone.utc)
            self.policy_version = self.rules.get('version', '1.0.0')
        except FileNotFoundError as e:
            raise FileNotFoundError(f"Marketplace rules file not found: {e}")
        except yaml.YAMLError as e:
            raise ValueError(f"Error parsing marketplace rules YAML: {e}")

    def reload_policies(self) -> None:
        """Reload policies from disk (useful when rules are updated)"""
        if self.rules_path is not None:
            self._load_policies()

    def _section(self, name: str) -> Dict[str, Any]:
        return self.rules.get(name, {}) or {}

    # Trade Rules

    def get_response_deadline(self, created_at: datetime) -> datetime:
        """Deadline by which the receiver must answer a proposal"""
        hours = self._section('trade').get('response_deadline_hours', 48)
        return created_at + timedelta(hours=hours)

    def get_shipping_deadline(self, accepted_at: datetime) -> datetime:
        days = self._section('trade').get('shipping_deadline_days', 5)
        return accepted_at + timedelta(days=days)

    def get_trade_auto_confirm_period(self) -> timedelta:
        """Waiting period after the last shipment before a trade completes on its own"""
        return timedelta(days=self._section('trade').get('auto_confirm_days', 7))

    def get_max_items_per_side(self) -> int:
        return self._section('trade').get('max_items_per_side', 10)

    def get_max_cash_amount(self) -> float:
        return float(self._section('trade').get('max_cash_amount', 100000))

    def get_dispute_reasons(self) -> List[str]:
        """Suggested dispute reason codes offered to users"""
        return list(self._section('trade').get('dispute_reasons', []))

    def get_dispute_description_max_length(self) -> int:
        return self._section('trade').get('dispute_description_max_length', 1000)

    # Order Rules

    def get_order_auto_confirm_period(self) -> timedelta:
        return timedelta(days=self._section('order').get('auto_confirm_days', 7))

    # Rating Rules

    def get_score_range(self) -> tuple[int, int]:
        """
        Returns:
            (min_score, max_score)
        """
        rating_rules = self._section('rating')
        return rating_rules.get('min_score', 1), rating_rules.get('max_score', 5)

    def clamp_pagination(self, page: Optional[int], page_size: Optional[int]) -> tuple[int, int]:
        """
        Normalise pagination input the way every listing endpoint expects

        Returns:
            (page, page_size) with page >= 1 and 1 <= page_size <= max
        """
        rating_rules = self._section('rating')
        default_size = rating_rules.get('default_page_size', 20)
        max_size = rating_rules.get('max_page_size', 100)

        safe_page = max(1, int(page or 1))
        safe_size = min(max_size, max(1, int(page_size or default_size)))
        return safe_page, safe_size

    # Cache Rules

    def get_product_cache_patterns(self) -> List[str]:
        """Key patterns to invalidate when seller scores change"""
        cache_rules = self._section('cache')
        return [
            cache_rules.get('product_detail_pattern', 'products:detail:*'),
            cache_rules.get('product_list_pattern', 'products:list:*'),
        ]

    def get_product_detail_key(self, product_id: str) -> str:
        template = self._section('cache').get('product_detail_key', 'products:detail:{product_id}')
        return template.format(product_id=product_id)

    # Notification Rules

    def get_default_channels(self) -> List[str]:
        return list(self._section('notifications').get('default_channels', ['email', 'in_app']))

    def get_notification_page_size(self) -> int:
        return self._section('notifications').get('page_size', 20)

    # Audit Rules

    def get_audit_default_limit(self) -> int:
        return self._section('audit').get('default_limit', 50)

    # Policy Metadata

    def get_policy_version(self) -> str:
        """Get current policy version"""
        return self.policy_version

    def get_last_loaded_time(self) -> Optional[datetime]:
        """Get when policies were last loaded"""
        return self.last_loaded
