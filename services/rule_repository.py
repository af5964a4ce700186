"""
规则持久化
规则集以 JSON 或 YAML 保存（字段名与 camelCase 数据格式一致），
读取失败时返回空规则集，写入失败时抛出 RuleStorageError
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Iterable, List, Protocol, Union

import yaml
from pydantic import ValidationError

from schemas.personalization import Rule

logger = logging.getLogger(__name__)


class RuleStorageError(Exception):
    """规则保存失败"""


class RuleRepository(Protocol):
    """规则存储接口"""

    def load_rules(self) -> List[Rule]:
        ...

    def save_rules(self, rules: Iterable[Rule]) -> None:
        ...


def dump_rules(rules: Iterable[Rule]) -> List[dict]:
    """规则集转换为可序列化的记录列表"""
    return [rule.to_record() for rule in rules]


def parse_rules(data: Any) -> List[Rule]:
    """
    解析记录列表为规则集

    支持顶层列表或 {"rules": [...]}；单条规则无效时跳过并告警
    """
    if data is None:
        return []
    if isinstance(data, dict):
        data = data.get("rules", [])
    if not isinstance(data, list):
        raise ValueError(f"规则数据应为列表，实际为 {type(data).__name__}")

    rules = []
    for index, record in enumerate(data):
        try:
            rules.append(Rule.model_validate(record))
        except ValidationError as e:
            logger.warning(f"第 {index} 条规则无效，已跳过: {e.error_count()}处错误")
    return rules


class InMemoryRuleRepository:
    """内存存储，保存序列化后的副本"""

    def __init__(self, rules: Iterable[Rule] = ()):
        self._records = dump_rules(rules)
        self.save_count = 0

    def load_rules(self) -> List[Rule]:
        return parse_rules(self._records)

    def save_rules(self, rules: Iterable[Rule]) -> None:
        self._records = dump_rules(rules)
        self.save_count += 1


class _FileRuleRepository:
    """文件存储基类"""

    format_name = ""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _decode(self, text: str) -> Any:
        raise NotImplementedError

    def _encode(self, records: List[dict]) -> str:
        raise NotImplementedError

    def load_rules(self) -> List[Rule]:
        """加载规则；文件不存在或损坏时返回空列表"""
        if not self.path.exists():
            logger.info(f"规则文件不存在，使用空规则集: {self.path}")
            return []

        try:
            text = self.path.read_text(encoding="utf-8")
            rules = parse_rules(self._decode(text))
        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.error(f"加载规则失败 {self.path}: {e}")
            return []

        logger.debug(f"从 {self.path} 加载了 {len(rules)} 条规则")
        return rules

    def save_rules(self, rules: Iterable[Rule]) -> None:
        """保存规则；先写临时文件再替换，失败时抛出 RuleStorageError"""
        content = self._encode(dump_rules(rules))
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(content, encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise RuleStorageError(f"保存规则失败 {self.path}: {e}") from e

        logger.debug(f"已保存规则到 {self.path}")


class JsonFileRuleRepository(_FileRuleRepository):
    format_name = "json"

    def _decode(self, text: str) -> Any:
        return json.loads(text)

    def _encode(self, records: List[dict]) -> str:
        return json.dumps(records, ensure_ascii=False, indent=2)


class YamlFileRuleRepository(_FileRuleRepository):
    format_name = "yaml"

    def _decode(self, text: str) -> Any:
        return yaml.safe_load(text)

    def _encode(self, records: List[dict]) -> str:
        return yaml.dump(
            {"rules": records}, default_flow_style=False, allow_unicode=True, sort_keys=False
        )


def build_repository(path: Union[str, Path]) -> _FileRuleRepository:
    """按扩展名选择存储格式，默认 JSON"""
    path = Path(path)
    if path.suffix.lower() in (".yaml", ".yml"):
        return YamlFileRuleRepository(path)
    return JsonFileRuleRepository(path)
