"""
字段投影

客户端通过 ``fields=a;b;c`` 请求额外字段。这里把请求拆成两部分：

- reveal：默认隐藏但需要返回的字段（password / following / followingTopics）
- expand：需要把 id 替换成完整文档的关联路径

两者都只依赖请求的字段名，与具体存储无关。存储实现负责提供
``resolve(collection, id)``，由 ``expand_document`` 完成解引用。
"""
import copy
from typing import Any, Callable, Dict, Iterable, Optional, Set

FIELD_DELIMITER = ";"

# 默认不返回的字段
HIDDEN_FIELDS = frozenset({"password", "following", "followingTopics"})

# 组合字段的展开改写：只展开数组元素里的引用
EXPANSION_REWRITES = {
    "educations": ("educations.school",),
    "employments": ("employments.company", "employments.job"),
}

# 可展开路径 -> 被引用的集合
REFERENCE_PATHS = {
    "following": "users",
    "followingTopics": "topics",
    "employments.company": "topics",
    "employments.job": "topics",
    "educations.school": "topics",
}

Resolver = Callable[[str, str], Optional[Dict[str, Any]]]


def split_fields(fields: Optional[str]) -> list:
    """拆分字段列表，丢弃空项"""
    if not fields:
        return []
    return [name.strip() for name in fields.split(FIELD_DELIMITER) if name.strip()]


def reveal_set(fields: Optional[str]) -> Set[str]:
    return set(split_fields(fields))


def expansion_paths(fields: Optional[str]) -> Set[str]:
    paths = set()
    for name in split_fields(fields):
        paths.update(EXPANSION_REWRITES.get(name, (name,)))
    return paths


def apply_visibility(doc: Dict[str, Any], reveal: Iterable[str] = ()) -> Dict[str, Any]:
    """去掉未被显式请求的隐藏字段，返回新字典"""
    reveal = set(reveal)
    return {
        key: value for key, value in doc.items()
        if key not in HIDDEN_FIELDS or key in reveal
    }


def expand_document(doc: Dict[str, Any], paths: Iterable[str], resolve: Resolver) -> Dict[str, Any]:
    """
    按路径解引用文档中的 id

    - 顶层路径（如 ``following``）：列表里的每个 id 替换成文档，已不存在的 id 被丢弃
    - 嵌套路径（如 ``employments.company``）：替换数组中每个元素的对应键，
      找不到时置为 None
    - 未知路径、或文档中不存在的字段（例如未 reveal 的隐藏字段）直接忽略
    """
    result = copy.deepcopy(doc)
    for path in sorted(set(paths)):
        collection = REFERENCE_PATHS.get(path)
        if collection is None:
            continue

        head, _, tail = path.partition(".")
        if head not in result or result[head] is None:
            continue

        if not tail:
            resolved = [resolve(collection, ref_id) for ref_id in result[head]]
            result[head] = [item for item in resolved if item is not None]
            continue

        for entry in result[head]:
            ref_id = entry.get(tail)
            if isinstance(ref_id, str):
                entry[tail] = resolve(collection, ref_id)

    return result


__all__ = [
    "FIELD_DELIMITER",
    "HIDDEN_FIELDS",
    "REFERENCE_PATHS",
    "split_fields",
    "reveal_set",
    "expansion_paths",
    "apply_visibility",
    "expand_document",
]
