"""
个性化规则数据结构定义
定义用户画像、条件、规则和内容变体的统一格式
"""

from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from engine.coercion import to_text

# 无规则命中时返回的保留变体键
DEFAULT_VARIANT_KEY = "default"

AttributeValue = Union[bool, int, float, str, None]


class Operator(str, Enum):
    """条件运算符（封闭集合）"""

    EQUALS = "equals"
    NOT_EQUALS = "notEquals"
    GREATER_THAN = "greaterThan"
    LESS_THAN = "lessThan"
    CONTAINS = "contains"
    NOT_CONTAINS = "notContains"

    @classmethod
    def parse(cls, raw: Any) -> Optional["Operator"]:
        """解析运算符，未知或空值返回None"""
        if isinstance(raw, cls):
            return raw
        try:
            return cls(raw)
        except ValueError:
            return None


def _as_text(value: Any) -> str:
    """把编辑端传入的标量统一成字符串"""
    if value is None:
        return ""
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, (str, bool, int, float)):
        return to_text(value)
    return value  # 交给pydantic报错


class Condition(BaseModel):
    """单个条件：属性/运算符/值三元组"""

    model_config = ConfigDict(frozen=True)

    property: str = Field(default="", description="用户画像中的属性名")
    operator: str = Field(default="", description="运算符，原样保存")
    value: str = Field(default="", description="比较值，始终以字符串保存")

    @field_validator("property", "operator", "value", mode="before")
    @classmethod
    def _normalize_text(cls, value: Any) -> Any:
        return _as_text(value)

    @classmethod
    def empty(cls) -> "Condition":
        """新建空条件"""
        return cls(property="", operator="", value="")


class Rule(BaseModel):
    """个性化规则：AND组合的条件列表映射到一个内容变体"""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(default="", description="创建时分配的唯一ID，不可修改")
    name: str = Field(default="", description="规则名称，可重复")
    conditions: Tuple[Condition, ...] = Field(default_factory=tuple, description="条件列表")
    content_variant: str = Field(
        default=DEFAULT_VARIANT_KEY, alias="contentVariant", description="命中后返回的变体键"
    )

    @field_validator("id", "name", "content_variant", mode="before")
    @classmethod
    def _normalize_text(cls, value: Any) -> Any:
        return _as_text(value)

    @field_validator("conditions", mode="before")
    @classmethod
    def _normalize_conditions(cls, value: Any) -> Any:
        if value is None:
            return ()
        return value

    def to_record(self) -> Dict[str, Any]:
        """转换为持久化格式（camelCase字段名）"""
        return self.model_dump(by_alias=True, mode="json")


# 规则集：有序列表，顺序即优先级
RuleSet = List[Rule]


class UserProfile(BaseModel):
    """用户画像"""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="画像ID")
    name: str = Field(default="", description="显示名称")
    attributes: Dict[str, AttributeValue] = Field(default_factory=dict, description="属性字典")

    @classmethod
    def from_flat(cls, record: Mapping[str, Any]) -> "UserProfile":
        """从扁平记录构建，id/name与属性并列"""
        data = dict(record)
        profile_id = data.pop("id", "")
        name = data.pop("name", "")
        return cls(id=str(profile_id), name=str(name), attributes=data)

    def get(self, key: str, default: Any = None) -> Any:
        """读取属性，找不到时回退到id/name"""
        if key in self.attributes:
            return self.attributes[key]
        if key == "id":
            return self.id
        if key == "name":
            return self.name
        return default


class ContentVariant(BaseModel):
    """可展示的内容变体"""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    key: str = Field(..., description="变体键")
    title: str = Field(default="", description="标题")
    body: str = Field(default="", description="正文")
    image_url: Optional[str] = Field(default=None, alias="imageUrl", description="配图地址")
