from typing import Any, Dict, List, Optional

from .auth import TokenIssuer, hash_password, verify_password
from .errors import Conflict, InvalidCredentials, NotFound
from .logger import get_logger
from .models import EdgeKind, Identity, TopicCreate, UserRegister, UserUpdate
from .pagination import page_window
from .projection import expansion_paths, reveal_set
from .store import AccountStore, Document

logger = get_logger("Services")


class CredentialService:
    def __init__(self, db: AccountStore, issuer: TokenIssuer):
        self.db = db
        self.issuer = issuer

    async def authenticate(self, name: str, password: str) -> str:
        """校验用户名和密码，成功后签发令牌"""
        user = await self.db.find_one(reveal={"password"}, name=name)
        if user is None or not verify_password(password, user.get("password")):
            logger.info(f"登录失败: {name}")
            raise InvalidCredentials()

        logger.info(f"用户登录: {name}")
        return self.issuer.sign({"name": user["name"], "id": user["id"]})

    def identify(self, token: str) -> Identity:
        """解码令牌得到身份，令牌无效时由 PyJWT 抛出异常"""
        claims = self.issuer.verify(token)
        return Identity(id=claims["id"], name=claims["name"])


class UserService:
    def __init__(self, db: AccountStore, default_per_page: int = 2):
        self.db = db
        self.default_per_page = default_per_page

    async def list_users(self, q: Optional[str] = None, page: Any = 1, per_page: Any = None) -> List[Document]:
        """按用户名模糊查询，分页返回"""
        skip, limit = page_window(page, per_page, self.default_per_page)
        return await self.db.find(name_contains=q or "", limit=limit, skip=skip)

    async def get_user(self, user_id: str, fields: Optional[str] = None) -> Document:
        """按 fields 显示隐藏字段、展开关联后返回用户"""
        user = await self.db.find_by_id(
            user_id,
            reveal=reveal_set(fields),
            expand=expansion_paths(fields),
        )
        if user is None:
            raise NotFound("用户不存在")
        return user

    async def create_user(self, user_data: UserRegister) -> Document:
        """注册新用户"""
        if await self.db.find_one(name=user_data.name) is not None:
            raise Conflict(f"用户名 '{user_data.name}' 已存在")

        doc = user_data.model_dump()
        doc["password"] = hash_password(user_data.password)
        user = await self.db.create(doc)
        logger.info(f"新用户注册: {user['name']} ({user['id']})")
        return user

    async def update_user(self, user_id: str, user_data: UserUpdate) -> Document:
        """部分更新：只合并请求中显式给出的字段"""
        partial: Dict[str, Any] = user_data.model_dump(exclude_unset=True)
        for key in ("name", "password"):
            if key in partial and partial[key] is None:
                del partial[key]
        for key in ("locations", "employments", "educations"):
            if key in partial and partial[key] is None:
                partial[key] = []
        if "password" in partial:
            partial["password"] = hash_password(partial["password"])

        user = await self.db.update_by_id(user_id, partial)
        if user is None:
            raise NotFound("用户不存在")
        logger.info(f"用户资料已更新: {user_id} {sorted(partial)}")
        return user

    async def delete_user(self, user_id: str) -> None:
        # 不会从其他用户的 following / followingTopics 中移除该 id
        if not await self.db.delete_by_id(user_id):
            raise NotFound("用户不存在")
        logger.info(f"用户已删除: {user_id}")


class RelationshipService:
    """
    关注关系管理

    每个用户有两个独立的边集合：关注的用户（following）和关注的话题
    （followingTopics）。每次操作都从存储重新读取集合，修改后整体写回；
    没有乐观锁，同一用户的并发修改以最后一次写入为准。
    """

    def __init__(self, db: AccountStore):
        self.db = db

    async def _load_edges(self, owner_id: str, kind: EdgeKind) -> set:
        owner = await self.db.find_by_id(owner_id, reveal={kind.value})
        if owner is None:
            raise NotFound("用户不存在")
        return set(owner.get(kind.value) or [])

    async def _save_edges(self, owner_id: str, kind: EdgeKind, edges: set) -> None:
        await self.db.update_by_id(owner_id, {kind.value: sorted(edges)})

    async def add(self, owner_id: str, target_id: str, kind: EdgeKind) -> bool:
        """加入边集合，已存在时不做任何修改；返回集合是否变化"""
        edges = await self._load_edges(owner_id, kind)
        if target_id in edges:
            return False

        edges.add(target_id)
        await self._save_edges(owner_id, kind, edges)
        logger.debug(f"{owner_id} +{kind.value} {target_id}")
        return True

    async def remove(self, owner_id: str, target_id: str, kind: EdgeKind) -> bool:
        """从边集合移除，不存在时不做任何修改；返回集合是否变化"""
        edges = await self._load_edges(owner_id, kind)
        if target_id not in edges:
            return False

        edges.discard(target_id)
        await self._save_edges(owner_id, kind, edges)
        logger.debug(f"{owner_id} -{kind.value} {target_id}")
        return True

    async def list_following(self, owner_id: str, kind: EdgeKind = EdgeKind.USERS) -> List[Document]:
        """展开后的关注对象，按 name、id 排序；已删除的对象不会出现"""
        owner = await self.db.find_by_id(owner_id, reveal={kind.value}, expand={kind.value})
        if owner is None:
            raise NotFound("用户不存在")
        targets = owner.get(kind.value) or []
        return sorted(targets, key=lambda doc: (doc["name"], doc["id"]))

    async def list_followers(self, target_id: str, kind: EdgeKind = EdgeKind.USERS) -> List[Document]:
        """边集合中包含 target_id 的所有用户"""
        return await self.db.find(edge=kind.value, target_id=target_id)


class TopicService:
    def __init__(self, db: AccountStore, default_per_page: int = 2):
        self.db = db
        self.default_per_page = default_per_page

    async def create_topic(self, topic_data: TopicCreate) -> Document:
        topic = await self.db.create_topic(topic_data.model_dump())
        logger.info(f"新话题: {topic['name']} ({topic['id']})")
        return topic

    async def get_topic(self, topic_id: str) -> Document:
        topic = await self.db.find_topic(topic_id)
        if topic is None:
            raise NotFound("话题不存在")
        return topic

    async def list_topics(self, q: Optional[str] = None, page: Any = 1, per_page: Any = None) -> List[Document]:
        skip, limit = page_window(page, per_page, self.default_per_page)
        return await self.db.find_topics(name_contains=q or "", limit=limit, skip=skip)
