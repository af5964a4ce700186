"""
pytest配置文件，提供共享的测试fixtures和配置
"""
import sys
from pathlib import Path
from typing import Any, Dict, List

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from schemas.personalization import Condition, Rule, UserProfile
from services.rule_repository import InMemoryRuleRepository
from services.variant_registry import VariantRegistry


@pytest.fixture
def premium_profile() -> UserProfile:
    """付费用户画像"""
    return UserProfile(
        id="user2",
        name="Premium Buyer (Desktop)",
        attributes={
            "userType": "premium",
            "hasPurchased": True,
            "browser": "Firefox",
            "device": "desktop",
            "purchaseCount": 10,
        },
    )


@pytest.fixture
def basic_profile() -> UserProfile:
    """普通移动端用户画像"""
    return UserProfile(
        id="user3",
        name="New Mobile Shopper",
        attributes={
            "userType": "basic",
            "hasPurchased": False,
            "browser": "Safari",
            "device": "mobile",
            "purchaseCount": 0,
        },
    )


def make_rule(rule_id: str, variant: str, *conditions: Dict[str, Any], name: str = "") -> Rule:
    """用 (property, operator, value) 字典快速构建规则"""
    return Rule(
        id=rule_id,
        name=name or f"rule {rule_id}",
        conditions=tuple(Condition(**c) for c in conditions),
        content_variant=variant,
    )


def cond(prop: str, operator: str, value: Any) -> Dict[str, Any]:
    return {"property": prop, "operator": operator, "value": value}


@pytest.fixture
def sample_rules() -> List[Rule]:
    """三条示例规则，顺序即优先级"""
    return [
        make_rule("rule-1", "premium", cond("userType", "equals", "premium"), name="Premium"),
        make_rule("rule-2", "mobile_optimized", cond("device", "equals", "mobile"), name="Mobile"),
        make_rule(
            "rule-3",
            "high_value_customer",
            cond("hasPurchased", "equals", "true"),
            cond("purchaseCount", "greaterThan", "2"),
            name="Loyal",
        ),
    ]


@pytest.fixture
def memory_repository(sample_rules) -> InMemoryRuleRepository:
    return InMemoryRuleRepository(sample_rules)


@pytest.fixture
def registry() -> VariantRegistry:
    return VariantRegistry.bundled()
