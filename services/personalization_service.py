"""
个性化服务
持有规则集、当前画像、存储和变体注册表；每次修改规则或切换画像后重新求值
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from config.settings import AppConfig, Settings, get_settings
from engine.evaluator import EvaluationResult, match_rule
from engine.ids import IdGenerator, build_id_generator
from engine.rule_store import RuleStore
from schemas.personalization import ContentVariant, Rule, UserProfile

from .rule_repository import RuleRepository, RuleStorageError, build_repository
from .structured_logging import EvaluationStage, LoggingContext, PersonalizationLoggerAdapter
from .variant_registry import VariantRegistry

logger = logging.getLogger(__name__)
business_logger = PersonalizationLoggerAdapter(logger)


@dataclass(frozen=True)
class PersonalizedContent:
    """某个画像的求值结果及对应内容"""
    profile_id: str
    result: EvaluationResult
    content: Optional[ContentVariant]

    @property
    def variant_key(self) -> str:
        return self.result.variant_key


class PersonalizationService:
    """规则编辑 + 求值的编排层"""

    def __init__(
        self,
        repository: RuleRepository,
        registry: VariantRegistry,
        profile: Optional[UserProfile] = None,
        *,
        id_generator: Optional[IdGenerator] = None,
        default_variant: Optional[str] = None,
    ):
        self.repository = repository
        self.registry = registry

        with LoggingContext(stage=EvaluationStage.LOAD_RULES):
            rules = repository.load_rules()
            business_logger.log_rules_loaded(len(rules), type(repository).__name__)

        self._store = RuleStore(
            rules,
            id_generator=id_generator,
            default_variant=default_variant or registry.default_key,
        )
        self._profile = profile
        self._current: Optional[PersonalizedContent] = None
        self._recompute()

    @classmethod
    def from_config(cls, config: AppConfig, profile: Optional[UserProfile] = None) -> "PersonalizationService":
        repository = build_repository(config.rules_file)
        registry = VariantRegistry.from_yaml(config.variants_file)
        # 顺序ID由 RuleStore 根据已加载的规则续号
        id_generator = None
        if config.id_strategy != "sequential":
            id_generator = build_id_generator(config.id_strategy)
        return cls(repository, registry, profile, id_generator=id_generator,
                   default_variant=config.default_variant)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None,
                      profile: Optional[UserProfile] = None) -> "PersonalizationService":
        return cls.from_config((settings or get_settings()).to_app_config(), profile)

    @property
    def rules(self) -> List[Rule]:
        return self._store.rules

    @property
    def profile(self) -> Optional[UserProfile]:
        return self._profile

    @property
    def current(self) -> Optional[PersonalizedContent]:
        """当前画像的结果；未选择画像时为None"""
        return self._current

    def resolve(self, profile: UserProfile) -> PersonalizedContent:
        """对任意画像求值，不改变当前选择"""
        return self._resolve(profile, self._store.rules)

    def select_profile(self, profile: UserProfile) -> Optional[PersonalizedContent]:
        """切换当前画像并重新求值"""
        self._profile = profile
        return self._recompute()

    def add_rule(self) -> Rule:
        """追加新规则，返回新建的规则"""
        return self._mutate("add_rule")[-1]

    def update_rule(self, rule_id: Any, field: str, value: Any) -> List[Rule]:
        return self._mutate("update_rule", rule_id, field, value)

    def add_condition(self, rule_id: Any) -> List[Rule]:
        return self._mutate("add_condition", rule_id)

    def update_condition(self, rule_id: Any, index: int, field: str, value: Any) -> List[Rule]:
        return self._mutate("update_condition", rule_id, index, field, value)

    def delete_condition(self, rule_id: Any, index: int) -> List[Rule]:
        return self._mutate("delete_condition", rule_id, index)

    def delete_rule(self, rule_id: Any) -> List[Rule]:
        return self._mutate("delete_rule", rule_id)

    def move_rule(self, rule_id: Any, new_index: int) -> List[Rule]:
        return self._mutate("move_rule", rule_id, new_index)

    def replace_rules(self, rules: List[Rule]) -> List[Rule]:
        return self._mutate("replace", rules)

    def save(self) -> None:
        """保存当前规则集"""
        self._persist(self._store.rules)

    def _mutate(self, operation: str, *args: Any) -> List[Rule]:
        with LoggingContext(stage=EvaluationStage.MUTATE_RULES):
            snapshot = getattr(self._store, operation)(*args)
            logger.debug(f"规则操作 {operation} 完成，当前 {len(snapshot)} 条规则")

        self._recompute(snapshot)
        self._persist(snapshot)
        return snapshot

    def _persist(self, rules: List[Rule]) -> None:
        with LoggingContext(stage=EvaluationStage.SAVE_RULES):
            try:
                self.repository.save_rules(rules)
            except RuleStorageError as e:
                business_logger.log_error_with_context("规则保存失败", e, rule_count=len(rules))
                raise

    def _recompute(self, rules: Optional[List[Rule]] = None) -> Optional[PersonalizedContent]:
        if self._profile is None:
            self._current = None
            return None
        self._current = self._resolve(self._profile, rules if rules is not None else self._store.rules)
        return self._current

    def _resolve(self, profile: UserProfile, rules: List[Rule]) -> PersonalizedContent:
        with LoggingContext(profile_id=profile.id, stage=EvaluationStage.EVALUATE) as ctx:
            result = match_rule(profile, rules)
            business_logger.log_evaluation(
                result.variant_key, result.rule_id, len(rules), ctx.duration_ms
            )

        with LoggingContext(profile_id=profile.id, stage=EvaluationStage.RESOLVE_CONTENT):
            content = self.registry.lookup_variant(result.variant_key)
            if content is None:
                logger.warning(f"变体 {result.variant_key} 不在注册表中")

        return PersonalizedContent(profile_id=profile.id, result=result, content=content)
