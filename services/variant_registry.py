"""
内容变体注册表
变体键 -> 可展示内容，只读；求值引擎只返回键，由调用方在这里查找内容
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml

from schemas.personalization import DEFAULT_VARIANT_KEY, ContentVariant

logger = logging.getLogger(__name__)

BUNDLED_VARIANTS_FILE = Path(__file__).resolve().parent.parent / "config" / "content_variants.yaml"


class VariantRegistry:
    """内容变体注册表"""

    def __init__(self, variants: Mapping[str, ContentVariant], default_key: str = DEFAULT_VARIANT_KEY):
        self._variants: Dict[str, ContentVariant] = dict(variants)
        self._default_key = default_key

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "VariantRegistry":
        """从 {default_key, variants: {key: {...}}} 结构构建"""
        raw_variants = data.get("variants") or {}
        if not isinstance(raw_variants, Mapping):
            raise ValueError("variants 应为键到内容的映射")

        variants = {
            str(key): ContentVariant.model_validate({**(value or {}), "key": str(key)})
            for key, value in raw_variants.items()
        }
        return cls(variants, default_key=str(data.get("default_key", DEFAULT_VARIANT_KEY)))

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "VariantRegistry":
        """从YAML文件加载"""
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, Mapping):
            raise ValueError(f"变体文件格式无效: {path}")

        registry = cls.from_mapping(data)
        logger.info(f"加载了 {len(registry)} 个内容变体: {path}")
        return registry

    @classmethod
    def bundled(cls) -> "VariantRegistry":
        """内置的五个示例变体"""
        return cls.from_yaml(BUNDLED_VARIANTS_FILE)

    @property
    def default_key(self) -> str:
        return self._default_key

    def lookup_variant(self, key: str) -> Optional[ContentVariant]:
        """查找变体内容，不存在时返回None"""
        return self._variants.get(key)

    def keys(self) -> List[str]:
        return list(self._variants)

    def __contains__(self, key: object) -> bool:
        return key in self._variants

    def __len__(self) -> int:
        return len(self._variants)
