"""
守卫：先检查，再执行

守卫不抛异常，而是返回 GuardResult。调用方只在 ``result.ok`` 时
继续执行真正的修改操作，失败时把 ``result.error`` 交给调用方处理。
检查完成后不会再次校验，检查与执行之间被删除的情况不做处理。
"""
from dataclasses import dataclass
from typing import Optional

from .errors import Forbidden, NotFound, ServiceError
from .models import Identity
from .store import AccountStore


@dataclass(frozen=True)
class GuardResult:
    error: Optional[ServiceError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def passed(cls) -> "GuardResult":
        return cls()

    @classmethod
    def failed(cls, error: ServiceError) -> "GuardResult":
        return cls(error=error)


def check_owner(identity: Identity, owner_id: str) -> GuardResult:
    """只允许操作自己的资源"""
    if identity.id != str(owner_id):
        return GuardResult.failed(Forbidden())
    return GuardResult.passed()


async def check_user_exists(store: AccountStore, user_id: str) -> GuardResult:
    if not await store.exists_by_id(str(user_id)):
        return GuardResult.failed(NotFound("用户不存在"))
    return GuardResult.passed()


async def check_topic_exists(store: AccountStore, topic_id: str) -> GuardResult:
    if not await store.topic_exists(str(topic_id)):
        return GuardResult.failed(NotFound("话题不存在"))
    return GuardResult.passed()


__all__ = ["GuardResult", "check_owner", "check_user_exists", "check_topic_exists"]
