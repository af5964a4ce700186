"""
规则集编辑操作
所有操作均为写时复制：输入当前规则列表，返回新列表，找不到ID/下标时返回未修改的副本
"""

import logging
import threading
from typing import Any, Callable, Dict, Iterable, List, Optional

from pydantic import ValidationError

from schemas.personalization import DEFAULT_VARIANT_KEY, Condition, Rule

from .ids import IdGenerator, SequentialIdGenerator

logger = logging.getLogger(__name__)

# 可通过 update_rule 修改的字段（id 不可修改）
RULE_FIELDS: Dict[str, str] = {
    "name": "name",
    "conditions": "conditions",
    "contentVariant": "content_variant",
    "content_variant": "content_variant",
}

CONDITION_FIELDS = ("property", "operator", "value")


def _same_id(rule: Rule, rule_id: Any) -> bool:
    return rule.id == str(rule_id)


def _map_rule(rules: Iterable[Rule], rule_id: Any, transform: Callable[[Rule], Rule]) -> List[Rule]:
    return [transform(rule) if _same_id(rule, rule_id) else rule for rule in rules]


def _with_field(rule: Rule, attr: str, value: Any) -> Rule:
    data = rule.model_dump()
    data[attr] = value
    try:
        return Rule.model_validate(data)
    except ValidationError as e:
        logger.warning(f"规则 {rule.id} 字段 {attr} 的值无效，忽略修改: {e.error_count()}处错误")
        return rule


def _with_conditions(rule: Rule, conditions: Iterable[Condition]) -> Rule:
    return rule.model_copy(update={"conditions": tuple(conditions)})


def add_rule(
    rules: Iterable[Rule],
    *,
    id_generator: IdGenerator,
    default_variant: str = DEFAULT_VARIANT_KEY,
) -> List[Rule]:
    """追加新规则：新ID、默认名称、一个空条件、默认变体"""
    current = list(rules)
    new_rule = Rule(
        id=id_generator.new_id(),
        name=f"New Rule {len(current) + 1}",
        conditions=(Condition.empty(),),
        content_variant=default_variant,
    )
    return current + [new_rule]


def update_rule(rules: Iterable[Rule], rule_id: Any, field: str, value: Any) -> List[Rule]:
    """替换指定规则的字段；未知ID/字段时不修改"""
    attr = RULE_FIELDS.get(field)
    if attr is None:
        logger.debug(f"不支持修改规则字段: {field}")
        return list(rules)
    return _map_rule(rules, rule_id, lambda rule: _with_field(rule, attr, value))


def add_condition(rules: Iterable[Rule], rule_id: Any) -> List[Rule]:
    """给指定规则追加空条件"""
    return _map_rule(
        rules, rule_id, lambda rule: _with_conditions(rule, rule.conditions + (Condition.empty(),))
    )


def update_condition(
    rules: Iterable[Rule], rule_id: Any, index: int, field: str, value: Any
) -> List[Rule]:
    """替换指定规则中第index个条件的字段；下标越界时不修改"""
    if field not in CONDITION_FIELDS:
        logger.debug(f"不支持修改条件字段: {field}")
        return list(rules)

    def transform(rule: Rule) -> Rule:
        if not _valid_index(rule, index):
            return rule
        target = rule.conditions[index]
        data = target.model_dump()
        data[field] = value
        try:
            replacement = Condition.model_validate(data)
        except ValidationError as e:
            logger.warning(f"规则 {rule.id} 条件 {index} 的值无效，忽略修改: {e.error_count()}处错误")
            return rule
        conditions = list(rule.conditions)
        conditions[index] = replacement
        return _with_conditions(rule, conditions)

    return _map_rule(rules, rule_id, transform)


def delete_condition(rules: Iterable[Rule], rule_id: Any, index: int) -> List[Rule]:
    """删除指定条件；规则可能因此没有条件（永不命中）"""

    def transform(rule: Rule) -> Rule:
        if not _valid_index(rule, index):
            return rule
        return _with_conditions(rule, (c for i, c in enumerate(rule.conditions) if i != index))

    return _map_rule(rules, rule_id, transform)


def delete_rule(rules: Iterable[Rule], rule_id: Any) -> List[Rule]:
    """删除规则，后续规则优先级前移"""
    return [rule for rule in rules if not _same_id(rule, rule_id)]


def move_rule(rules: Iterable[Rule], rule_id: Any, new_index: int) -> List[Rule]:
    """调整规则优先级，目标下标超出范围时取边界"""
    current = list(rules)
    position = next((i for i, rule in enumerate(current) if _same_id(rule, rule_id)), None)
    if position is None or isinstance(new_index, bool) or not isinstance(new_index, int):
        return current

    rule = current.pop(position)
    target = min(max(new_index, 0), len(current))
    current.insert(target, rule)
    return current


def _valid_index(rule: Rule, index: Any) -> bool:
    if isinstance(index, bool) or not isinstance(index, int):
        return False
    return 0 <= index < len(rule.conditions)


class RuleStore:
    """
    可编辑的规则集

    持有当前快照，每次修改在锁内完成整体的读-改-写，
    读者只会看到完整的快照。
    """

    def __init__(
        self,
        rules: Optional[Iterable[Rule]] = None,
        *,
        id_generator: Optional[IdGenerator] = None,
        default_variant: str = DEFAULT_VARIANT_KEY,
    ) -> None:
        self._rules: List[Rule] = list(rules or [])
        self._lock = threading.Lock()
        self._id_generator = id_generator or SequentialIdGenerator.following(self._rules)
        self.default_variant = default_variant

    @property
    def rules(self) -> List[Rule]:
        """当前快照的副本"""
        with self._lock:
            return list(self._rules)

    def _apply(self, operation: Callable[..., List[Rule]], *args: Any, **kwargs: Any) -> List[Rule]:
        with self._lock:
            self._rules = operation(self._rules, *args, **kwargs)
            return list(self._rules)

    def replace(self, rules: Iterable[Rule]) -> List[Rule]:
        """整体替换规则集，顺序ID续号到新规则之后"""
        with self._lock:
            self._rules = list(rules)
            if isinstance(self._id_generator, SequentialIdGenerator):
                self._id_generator.advance_past(self._rules)
            return list(self._rules)

    def add_rule(self) -> List[Rule]:
        return self._apply(add_rule, id_generator=self._id_generator, default_variant=self.default_variant)

    def update_rule(self, rule_id: Any, field: str, value: Any) -> List[Rule]:
        return self._apply(update_rule, rule_id, field, value)

    def add_condition(self, rule_id: Any) -> List[Rule]:
        return self._apply(add_condition, rule_id)

    def update_condition(self, rule_id: Any, index: int, field: str, value: Any) -> List[Rule]:
        return self._apply(update_condition, rule_id, index, field, value)

    def delete_condition(self, rule_id: Any, index: int) -> List[Rule]:
        return self._apply(delete_condition, rule_id, index)

    def delete_rule(self, rule_id: Any) -> List[Rule]:
        return self._apply(delete_rule, rule_id)

    def move_rule(self, rule_id: Any, new_index: int) -> List[Rule]:
        return self._apply(move_rule, rule_id, new_index)
