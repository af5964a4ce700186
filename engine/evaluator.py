"""
个性化规则求值引擎
按顺序遍历规则，返回第一条全部条件满足的规则的内容变体
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Union

from pydantic import ValidationError

from schemas.personalization import (
    DEFAULT_VARIANT_KEY,
    Condition,
    Operator,
    Rule,
    UserProfile,
)

from .coercion import (
    Coerced,
    convert_value,
    loose_greater,
    loose_less,
    strict_equals,
    text_contains,
)

logger = logging.getLogger(__name__)

ProfileLike = Union[UserProfile, Mapping[str, Any]]
RuleLike = Union[Rule, Mapping[str, Any]]

_COMPARATORS: Dict[Operator, Callable[[Coerced, Coerced], bool]] = {
    Operator.EQUALS: strict_equals,
    Operator.NOT_EQUALS: lambda a, b: not strict_equals(a, b),
    Operator.GREATER_THAN: loose_greater,
    Operator.LESS_THAN: loose_less,
    Operator.CONTAINS: text_contains,
    Operator.NOT_CONTAINS: lambda a, b: not text_contains(a, b),
}


@dataclass(frozen=True)
class EvaluationResult:
    """求值结果"""
    variant_key: str
    rule_id: Optional[str] = None
    rule_name: Optional[str] = None

    @property
    def matched(self) -> bool:
        return self.rule_id is not None


def _profile_value(profile: ProfileLike, prop: str) -> Any:
    if isinstance(profile, (UserProfile, Mapping)):
        return profile.get(prop)
    return None


def _as_rule(candidate: RuleLike) -> Optional[Rule]:
    """持久化格式的字典按需校验，校验失败视为不命中"""
    if isinstance(candidate, Rule):
        return candidate
    if isinstance(candidate, Mapping):
        try:
            return Rule.model_validate(candidate)
        except ValidationError as e:
            logger.debug(f"规则格式无效，跳过: {e.error_count()}处错误")
    return None


def condition_satisfied(profile: ProfileLike, condition: Condition) -> bool:
    """单个条件是否满足；属性缺失或运算符未知时不满足"""
    user_value = _profile_value(profile, condition.property)
    if user_value is None:
        return False

    operator = Operator.parse(condition.operator)
    if operator is None:
        return False

    return _COMPARATORS[operator](convert_value(user_value), convert_value(condition.value))


def rule_matches(profile: ProfileLike, rule: Rule) -> bool:
    """规则命中：至少一个条件且全部满足"""
    if not rule.conditions:
        return False
    return all(condition_satisfied(profile, condition) for condition in rule.conditions)


def match_rule(profile: ProfileLike, rules: Iterable[RuleLike]) -> EvaluationResult:
    """
    按顺序求值，第一条命中的规则胜出

    Args:
        profile: 用户画像（UserProfile 或普通字典）
        rules: 有序规则列表，下标0优先级最高

    Returns:
        求值结果；无命中时变体键为 "default"
    """
    for index, candidate in enumerate(rules):
        rule = _as_rule(candidate)
        if rule is None:
            continue

        # 无条件的规则永不命中
        if not rule.conditions:
            logger.debug(f"规则 {index} ({rule.name}) 无条件，跳过")
            continue

        if rule_matches(profile, rule):
            logger.debug(f"规则 {index} ({rule.name}) 命中 -> {rule.content_variant}")
            return EvaluationResult(
                variant_key=rule.content_variant, rule_id=rule.id, rule_name=rule.name
            )

    return EvaluationResult(variant_key=DEFAULT_VARIANT_KEY)


def evaluate(profile: ProfileLike, rules: Iterable[RuleLike]) -> str:
    """返回选中的内容变体键"""
    return match_rule(profile, rules).variant_key
