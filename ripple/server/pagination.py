"""分页参数处理：对外 page 从 1 开始，内部换算成 skip"""
from typing import Any, Tuple

# SQLite LIMIT/OFFSET 只接受 64 位整数，参数和换算结果都截断到这个上限以内
MAX_WINDOW = 2 ** 31 - 1


def coerce_positive(value: Any, default: int) -> int:
    """转换为整数并限制在 [1, MAX_WINDOW]，无法解析时使用默认值"""
    if value is None or value == "":
        number = default
    else:
        try:
            number = int(value)
        except (TypeError, ValueError):
            number = default
    return min(max(number, 1), MAX_WINDOW)


def page_window(page: Any = 1, per_page: Any = 2, default_per_page: int = 2) -> Tuple[int, int]:
    """
    计算 (skip, limit)

    >>> page_window(1, 2)
    (0, 2)
    >>> page_window(0, 0)
    (0, 1)
    """
    limit = coerce_positive(per_page, default_per_page)
    page_number = coerce_positive(page, 1)
    skip = min((page_number - 1) * limit, MAX_WINDOW)
    return skip, limit
