"""
存储接口

服务层只依赖这里定义的协议，``ripple.server.db.Database`` 是基于
peewee/SQLite 的实现，测试中可以注入内存实现。

用户文档是普通字典，键名为 id、name、password、avatar_url、gender、headline、
locations、business、employments、educations、following、followingTopics、
created_at；``following`` 和 ``followingTopics`` 以 id 列表形式读写。
"""
from typing import Any, Dict, Iterable, List, Optional, Protocol

Document = Dict[str, Any]


class AccountStore(Protocol):
    """账号与话题存储"""

    async def find_one(self, reveal: Iterable[str] = (), **predicate: Any) -> Optional[Document]:
        """按字段相等查询一个用户"""
        ...

    async def find_by_id(self, user_id: str, reveal: Iterable[str] = (),
                         expand: Iterable[str] = ()) -> Optional[Document]:
        """按 id 查询用户，并按需显示隐藏字段、展开关联"""
        ...

    async def find(self, name_contains: str = "", edge: Optional[str] = None,
                   target_id: Optional[str] = None, limit: Optional[int] = None,
                   skip: int = 0) -> List[Document]:
        """
        查询用户列表，按 name、id 排序

        - name_contains: 用户名包含（不区分大小写），空字符串匹配全部
        - edge + target_id: 该边集合中包含 target_id 的用户
        """
        ...

    async def create(self, doc: Document) -> Document:
        """创建用户，用户名重复时抛出 Conflict"""
        ...

    async def update_by_id(self, user_id: str, partial: Document) -> Optional[Document]:
        """合并部分字段，返回更新后的文档；用户不存在时返回 None"""
        ...

    async def delete_by_id(self, user_id: str) -> bool:
        ...

    async def exists_by_id(self, user_id: str) -> bool:
        ...

    async def create_topic(self, doc: Document) -> Document:
        ...

    async def find_topic(self, topic_id: str) -> Optional[Document]:
        ...

    async def topic_exists(self, topic_id: str) -> bool:
        ...

    async def find_topics(self, name_contains: str = "", limit: Optional[int] = None,
                          skip: int = 0) -> List[Document]:
        ...


__all__ = ["Document", "AccountStore"]
