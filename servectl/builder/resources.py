"""把用户的计算资源请求分配给同一个Pod中的各个容器。

request-monitor sidecar 固定占用一份基线资源，剩余部分在其他容器之间平均分配。
数量统一换算成整数milli单位，保证各份之和正好等于剩余量；除不尽的部分分给第一份。
"""

from decimal import Decimal, ROUND_CEILING
from typing import List, Optional, Union

from kubernetes.utils import parse_quantity

from servectl.errors import InvalidComputeBudget

Quantity = Union[int, float, str]


def to_milli(quantity: Quantity) -> int:
    """把Kubernetes quantity解析成milli单位，向上取整"""
    try:
        # 浮点数先转成十进制字符串，避免二进制误差被向上取整放大
        value = parse_quantity(str(quantity) if isinstance(quantity, float) else quantity)
    except ValueError as e:
        raise InvalidComputeBudget(f"Invalid quantity {quantity!r}: {e}")
    return int((Decimal(value) * 1000).to_integral_value(rounding=ROUND_CEILING))


def format_milli(milli: int) -> str:
    """把milli单位格式化成最短的精确quantity字符串"""
    if milli % 1000 == 0:
        return str(milli // 1000)
    return f"{milli}m"


def split_milli(milli: int, parts: int) -> List[int]:
    if parts < 1:
        raise ValueError(f"parts must be at least 1, got {parts}")
    share, extra = divmod(milli, parts)
    return [share + extra] + [share] * (parts - 1)


def split_quantity(total: Optional[Quantity], reserved: Quantity, parts: int) -> Optional[List[str]]:
    """从 `total` 中减去 `reserved`，剩余部分分成 `parts` 份。

    `total` 为None时返回None：用户未设置的请求在所有容器上都保持未设置，而不是变成0。

    `reserved` 大于 `total` 时抛出InvalidComputeBudget，不会自动修正预算，
    需要用户声明更大的请求。
    """
    if total is None:
        return None

    remainder = to_milli(total) - to_milli(reserved)
    if remainder < 0:
        raise InvalidComputeBudget(
            f"Requested {total} is less than the {reserved} reserved for the request monitor"
        )
    return [format_milli(share) for share in split_milli(remainder, parts)]
