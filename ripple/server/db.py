"""
数据库模块 - 一站式解决方案

职责：
1. 定义数据库代理（避免循环导入）
2. 定义所有表结构
3. 提供数据访问层（Database类），实现 ``store.AccountStore`` 协议
"""
import json
import uuid
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional
from datetime import datetime

from peewee import (
    DatabaseProxy, SqliteDatabase, Model, IntegrityError, fn,
    UUIDField, CharField, TextField, DateTimeField
)

from .errors import Conflict
from .logger import get_logger
from .projection import apply_visibility, expand_document
from .store import Document

logger = get_logger("Database")


# ============================================================================
# 第一部分：数据库代理（核心，避免循环导入）
# ============================================================================

db_proxy = DatabaseProxy()


def _icontains(value, needle):
    """不区分大小写的子串匹配（支持非 ASCII 字符）"""
    if value is None:
        return 0
    return 1 if needle.casefold() in value.casefold() else 0


def _json_has(value, member):
    """JSON 数组列中是否包含某个值"""
    if not value:
        return 0
    return 1 if member in json.loads(value) else 0


def init_database(db_path: str):
    """
    初始化数据库代理

    Args:
        db_path: SQLite 数据库文件路径
    """
    current = db_proxy.obj
    if current is not None and current.database == db_path:
        return

    # 确保数据库目录存在
    db_file = Path(db_path)
    db_file.parent.mkdir(parents=True, exist_ok=True)

    database = SqliteDatabase(db_path, pragmas={
        'foreign_keys': 1,
        'journal_mode': 'wal',
    })
    # 查询中用到的自定义函数
    database.register_function(_icontains, 'ripple_icontains', 2)
    database.register_function(_json_has, 'ripple_json_has', 2)

    db_proxy.initialize(database)


# ============================================================================
# 第二部分：表定义
# ============================================================================

class BaseTable(Model):
    """
    数据库表基类

    所有表模型均继承此类，使用统一的数据库代理
    """
    class Meta:
        database = db_proxy


class UserTable(BaseTable):
    """用户数据表 - 列表/集合类字段以 JSON 文本存储"""
    id = UUIDField(primary_key=True, default=uuid.uuid4)
    name = CharField(max_length=100, unique=True)
    password_hash = CharField()

    # 档案信息
    avatar_url = CharField(max_length=500, null=True)
    gender = CharField(max_length=10, null=True)
    headline = CharField(max_length=500, null=True)
    locations = TextField(default="[]")
    business = CharField(max_length=255, null=True)
    employments = TextField(default="[]")
    educations = TextField(default="[]")

    # 关注关系（边集合）
    following = TextField(default="[]")
    following_topics = TextField(default="[]")

    created_at = DateTimeField(default=datetime.now)

    class Meta:
        table_name = 'users'


class TopicTable(BaseTable):
    """话题数据表"""
    id = UUIDField(primary_key=True, default=uuid.uuid4)
    name = CharField(max_length=100, unique=True)
    avatar_url = CharField(max_length=500, null=True)
    introduction = TextField(null=True)
    created_at = DateTimeField(default=datetime.now)

    class Meta:
        table_name = 'topics'


def get_all_tables():
    """获取所有表模型列表"""
    return [UserTable, TopicTable]


# 文档键 -> 列名
USER_COLUMNS = {
    "id": "id",
    "name": "name",
    "password": "password_hash",
    "avatar_url": "avatar_url",
    "gender": "gender",
    "headline": "headline",
    "locations": "locations",
    "business": "business",
    "employments": "employments",
    "educations": "educations",
    "following": "following",
    "followingTopics": "following_topics",
    "created_at": "created_at",
}

JSON_FIELDS = frozenset({"locations", "employments", "educations", "following", "followingTopics"})


def _user_doc(row: UserTable) -> Document:
    """表记录 -> 完整用户文档（包含隐藏字段）"""
    doc = {}
    for key, column in USER_COLUMNS.items():
        value = getattr(row, column)
        if key in JSON_FIELDS:
            value = json.loads(value) if value else []
        elif key == "id":
            value = str(value)
        doc[key] = value
    return doc


def _topic_doc(row: TopicTable) -> Document:
    return {
        "id": str(row.id),
        "name": row.name,
        "avatar_url": row.avatar_url,
        "introduction": row.introduction,
        "created_at": row.created_at,
    }


def _user_columns(doc: Document) -> Dict[str, Any]:
    """用户文档（可以是部分字段）-> 列值"""
    values = {}
    for key, value in doc.items():
        column = USER_COLUMNS.get(key)
        if column is None or key in ("id", "created_at"):
            continue
        if key in JSON_FIELDS:
            value = json.dumps(list(value or []))
        values[column] = value
    return values


# ============================================================================
# 第三部分：数据访问层
# ============================================================================

class Database:
    """
    数据访问层 - 封装所有数据库操作

    使用示例：
        >>> db = Database("ripple.db")
        >>> await db.connect()
        >>> user = await db.find_by_id(user_id, reveal={"following"}, expand={"following"})
    """

    def __init__(self, db_path: str = None):
        """
        创建 Database 实例

        Args:
            db_path: SQLite 数据库文件路径
                    - 如果提供，则初始化数据库代理
                    - 如果为 None，则使用已初始化的代理
        """
        if db_path:
            init_database(db_path)

        self.db = db_proxy

    async def connect(self):
        """连接数据库"""
        if self.db.is_closed():
            self.db.connect()

    async def disconnect(self):
        """断开数据库连接"""
        if not self.db.is_closed():
            self.db.close()

    def create_tables(self):
        """创建缺失的表"""
        self.db.create_tables(get_all_tables(), safe=True)

    def _resolve(self, collection: str, ref_id: str) -> Optional[Document]:
        """展开关联时按 id 取被引用的文档（按默认可见性）"""
        if collection == "users":
            row = UserTable.get_or_none(UserTable.id == ref_id)
            return apply_visibility(_user_doc(row)) if row else None
        if collection == "topics":
            row = TopicTable.get_or_none(TopicTable.id == ref_id)
            return _topic_doc(row) if row else None
        return None

    # ---------------------------------------------------------------- 用户

    async def find_one(self, reveal: Iterable[str] = (), **predicate: Any) -> Optional[Document]:
        """按字段相等查询一个用户"""
        query = UserTable.select()
        for key, value in predicate.items():
            column = USER_COLUMNS.get(key)
            if column is None or key in JSON_FIELDS:
                raise ValueError(f"不支持按字段 {key} 查询")
            query = query.where(getattr(UserTable, column) == value)

        row = query.first()
        return apply_visibility(_user_doc(row), reveal) if row else None

    async def find_by_id(self, user_id: str, reveal: Iterable[str] = (),
                         expand: Iterable[str] = ()) -> Optional[Document]:
        """根据ID获取用户，按需显示隐藏字段并展开关联"""
        row = UserTable.get_or_none(UserTable.id == user_id)
        if row is None:
            return None

        doc = apply_visibility(_user_doc(row), reveal)
        return expand_document(doc, expand, self._resolve)

    async def find(self, name_contains: str = "", edge: Optional[str] = None,
                   target_id: Optional[str] = None, limit: Optional[int] = None,
                   skip: int = 0) -> List[Document]:
        """查询用户列表，按 name、id 排序"""
        query = UserTable.select()
        if name_contains:
            query = query.where(fn.ripple_icontains(UserTable.name, name_contains) == 1)
        if edge is not None:
            column = getattr(UserTable, USER_COLUMNS[edge])
            query = query.where(fn.ripple_json_has(column, target_id) == 1)

        query = query.order_by(UserTable.name, UserTable.id)
        if limit is not None:
            query = query.limit(limit)
        if skip:
            query = query.offset(skip)

        return [apply_visibility(_user_doc(row)) for row in query]

    async def create(self, doc: Document) -> Document:
        """创建用户，用户名重复时抛出 Conflict"""
        try:
            with self.db.atomic():
                row = UserTable.create(**_user_columns(doc))
        except IntegrityError as e:
            logger.warning(f"创建用户失败: {e}")
            raise Conflict(f"用户名 '{doc.get('name')}' 已存在")

        return apply_visibility(_user_doc(row))

    async def update_by_id(self, user_id: str, partial: Document) -> Optional[Document]:
        """合并部分字段"""
        values = _user_columns(partial)
        if values:
            try:
                with self.db.atomic():
                    updated = UserTable.update(**values).where(UserTable.id == user_id).execute()
            except IntegrityError as e:
                logger.warning(f"更新用户 {user_id} 失败: {e}")
                raise Conflict(f"用户名 '{partial.get('name')}' 已存在")
            if not updated:
                return None

        return await self.find_by_id(user_id)

    async def delete_by_id(self, user_id: str) -> bool:
        # 不清理其他用户边集合中的引用
        return UserTable.delete().where(UserTable.id == user_id).execute() > 0

    async def exists_by_id(self, user_id: str) -> bool:
        return UserTable.select().where(UserTable.id == user_id).exists()

    # ---------------------------------------------------------------- 话题

    async def create_topic(self, doc: Document) -> Document:
        try:
            with self.db.atomic():
                row = TopicTable.create(
                    name=doc["name"],
                    avatar_url=doc.get("avatar_url"),
                    introduction=doc.get("introduction"),
                )
        except IntegrityError as e:
            logger.warning(f"创建话题失败: {e}")
            raise Conflict(f"话题 '{doc.get('name')}' 已存在")
        return _topic_doc(row)

    async def find_topic(self, topic_id: str) -> Optional[Document]:
        row = TopicTable.get_or_none(TopicTable.id == topic_id)
        return _topic_doc(row) if row else None

    async def topic_exists(self, topic_id: str) -> bool:
        return TopicTable.select().where(TopicTable.id == topic_id).exists()

    async def find_topics(self, name_contains: str = "", limit: Optional[int] = None,
                          skip: int = 0) -> List[Document]:
        query = TopicTable.select()
        if name_contains:
            query = query.where(fn.ripple_icontains(TopicTable.name, name_contains) == 1)
        query = query.order_by(TopicTable.name, TopicTable.id)
        if limit is not None:
            query = query.limit(limit)
        if skip:
            query = query.offset(skip)
        return [_topic_doc(row) for row in query]
