"""
类型转换工具
比较前把画像属性值和条件值转换为 布尔 / 数字 / 小写字符串
"""

import math
import re
from decimal import Decimal
from typing import Any, Optional, Union

Coerced = Union[bool, float, str]

# 仅接受ASCII十进制字面量：可选符号、小数部分和指数
_DECIMAL_LITERAL = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


def _number_text(value: float) -> str:
    """
    有限浮点数的文本形式
    使用最短往返位数；绝对值在 [1e-6, 1e21) 内用普通写法，否则用指数写法（1e+21、1e-7）
    """
    if value == 0:
        return "0"
    sign, digits, exponent = Decimal(repr(value)).normalize().as_tuple()
    text = "".join(str(d) for d in digits)
    size = len(text)
    point = size + exponent

    if size <= point <= 21:
        body = text + "0" * (point - size)
    elif 0 < point <= 21:
        body = f"{text[:point]}.{text[point:]}"
    elif -6 < point <= 0:
        body = "0." + "0" * -point + text
    else:
        power = point - 1
        mantissa = text if size == 1 else f"{text[0]}.{text[1:]}"
        body = f"{mantissa}e{'+' if power >= 0 else '-'}{abs(power)}"
    return f"-{body}" if sign else body


def to_text(value: Any) -> str:
    """值的文本形式，数字去掉多余的 .0，布尔为小写"""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        return _number_text(value)
    if value is None:
        return "null"
    return str(value)


def _parse_number(value: Any) -> Optional[float]:
    """解析为有限浮点数，失败返回None"""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        # float() 还接受下划线、inf/nan 和非ASCII数字，这里都不接受
        if not _DECIMAL_LITERAL.fullmatch(text):
            return None
        number = float(text)
    else:
        return None

    if not math.isfinite(number):
        return None
    return number


def convert_value(value: Any) -> Coerced:
    """
    比较前的统一转换

    1. 布尔值原样保留；字符串 "true"/"false"（仅小写）转为布尔
    2. 可解析为有限数字的转为float
    3. 其余转为小写字符串
    """
    if isinstance(value, bool):
        return value
    if value == "true":
        return True
    if value == "false":
        return False

    number = _parse_number(value)
    if number is not None:
        return number

    return to_text(value).lower()


def strict_equals(left: Coerced, right: Coerced) -> bool:
    """严格相等：类型一致且值相等（True 不等于 1.0）"""
    return type(left) is type(right) and left == right


def _loose_number(value: Coerced) -> float:
    """混合类型比较时的数字化：布尔为0/1，空白字符串为0，其余字符串为NaN"""
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, float):
        return value
    if not str(value).strip():
        return 0.0
    return math.nan


def loose_greater(left: Coerced, right: Coerced) -> bool:
    if isinstance(left, str) and isinstance(right, str):
        return left > right
    return _loose_number(left) > _loose_number(right)


def loose_less(left: Coerced, right: Coerced) -> bool:
    if isinstance(left, str) and isinstance(right, str):
        return left < right
    return _loose_number(left) < _loose_number(right)


def text_contains(left: Coerced, right: Coerced) -> bool:
    """包含判断，两侧按文本形式比较"""
    return to_text(right) in to_text(left)
