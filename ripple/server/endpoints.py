from typing import List, Optional
from uuid import UUID

import jwt
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import ValidationError

from .auth import TokenIssuer
from .config import get_settings
from .db import Database
from .errors import ServiceError
from .guards import check_owner, check_topic_exists, check_user_exists
from .logger import get_logger
from .models import EdgeKind, Identity, Token, Topic, TopicCreate, UserAuth, UserRegister, UserUpdate
from .services import CredentialService, RelationshipService, TopicService, UserService

logger = get_logger("Endpoints")

router = APIRouter()


# 明确的依赖注入函数
async def get_db():
    """获取数据库连接"""
    settings = get_settings()
    db = Database(settings.sqlite_path)
    await db.connect()
    try:
        yield db
    finally:
        await db.disconnect()


def get_token_issuer() -> TokenIssuer:
    return TokenIssuer.from_settings(get_settings())


def get_credential_service(
        db: Database = Depends(get_db),
        issuer: TokenIssuer = Depends(get_token_issuer)
) -> CredentialService:
    return CredentialService(db, issuer)


def get_user_service(
        db: Database = Depends(get_db)
) -> UserService:
    return UserService(db, get_settings().default_per_page)


def get_relationship_service(
        db: Database = Depends(get_db)
) -> RelationshipService:
    return RelationshipService(db)


def get_topic_service(
        db: Database = Depends(get_db)
) -> TopicService:
    return TopicService(db, get_settings().default_per_page)


bearer = HTTPBearer(auto_error=False)


def get_current_identity(
        request: Request,
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
        service: CredentialService = Depends(get_credential_service)
) -> Identity:
    """从 Authorization: Bearer <token> 中解析当前身份"""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="未登录",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        identity = service.identify(credentials.credentials)
    except (jwt.PyJWTError, KeyError, ValidationError) as e:
        logger.debug(f"令牌无效: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="令牌无效或已过期",
            headers={"WWW-Authenticate": "Bearer"},
        )
    # 访问日志中记录请求者
    request.state.user_id = identity.id
    return identity


def _http_error(error: ServiceError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.detail)


# ============================================================================
# 用户与登录
# ============================================================================

@router.post("/users/login", response_model=Token)
async def login(auth_data: UserAuth, service: CredentialService = Depends(get_credential_service)):
    """
    用户登录

    HTTP调用方式:
    POST /users/login
    Body: {"name": "用户名", "password": "密码"}

    返回:
    - 200: {"token": "..."}，令牌有效期 1 天
    - 412: 用户名或密码错误
    """
    try:
        token = await service.authenticate(auth_data.name, auth_data.password)
    except ServiceError as e:
        raise _http_error(e)
    return Token(token=token)


@router.get("/users", response_model=List[dict])
async def list_users(q: str = "", page: Optional[str] = None, per_page: Optional[str] = None,
                     service: UserService = Depends(get_user_service)):
    """
    用户列表

    HTTP调用方式:
    GET /users?q=关键字&page=1&per_page=2

    - q: 用户名包含的关键字（不区分大小写），为空时返回全部
    - page 从 1 开始；page、per_page 小于 1 时按 1 处理
    """
    return await service.list_users(q, page, per_page)


@router.post("/users", response_model=dict, status_code=status.HTTP_201_CREATED)
async def register(user_data: UserRegister, service: UserService = Depends(get_user_service)):
    """
    用户注册

    返回:
    - 201: 创建的用户（不含密码）
    - 409: 用户名已存在
    - 422: 请求参数验证失败
    """
    try:
        return await service.create_user(user_data)
    except ServiceError as e:
        raise _http_error(e)


@router.get("/users/{user_id}", response_model=dict)
async def get_user(user_id: UUID, fields: str = "", service: UserService = Depends(get_user_service)):
    """
    根据ID获取用户信息

    HTTP调用方式:
    GET /users/{user_id}?fields=following;educations;employments

    fields 中的字段会被显示（即使默认隐藏）并展开为完整文档；
    educations 只展开 school，employments 展开 company 和 job。
    """
    try:
        return await service.get_user(str(user_id), fields)
    except ServiceError as e:
        raise _http_error(e)


@router.patch("/users/{user_id}", response_model=dict)
async def update_user(user_id: UUID, user_data: UserUpdate,
                      identity: Identity = Depends(get_current_identity),
                      service: UserService = Depends(get_user_service)):
    """更新自己的资料（部分更新）"""
    guard = check_owner(identity, str(user_id))
    if not guard.ok:
        raise _http_error(guard.error)

    try:
        return await service.update_user(str(user_id), user_data)
    except ServiceError as e:
        raise _http_error(e)


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(user_id: UUID, identity: Identity = Depends(get_current_identity),
                      service: UserService = Depends(get_user_service)):
    """删除自己的账号"""
    guard = check_owner(identity, str(user_id))
    if not guard.ok:
        raise _http_error(guard.error)

    try:
        await service.delete_user(str(user_id))
    except ServiceError as e:
        raise _http_error(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================================
# 关注用户
# ============================================================================

@router.get("/users/{user_id}/following", response_model=List[dict])
async def list_following(user_id: UUID, service: RelationshipService = Depends(get_relationship_service)):
    """某个用户关注的用户列表"""
    try:
        return await service.list_following(str(user_id), EdgeKind.USERS)
    except ServiceError as e:
        raise _http_error(e)


@router.get("/users/{user_id}/followers", response_model=List[dict])
async def list_followers(user_id: UUID, db: Database = Depends(get_db)):
    """关注某个用户的用户列表"""
    guard = await check_user_exists(db, str(user_id))
    if not guard.ok:
        raise _http_error(guard.error)
    return await RelationshipService(db).list_followers(str(user_id), EdgeKind.USERS)


@router.put("/users/following/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def follow_user(user_id: UUID, identity: Identity = Depends(get_current_identity),
                      db: Database = Depends(get_db)):
    """关注用户，重复关注不报错"""
    guard = await check_user_exists(db, str(user_id))
    if not guard.ok:
        raise _http_error(guard.error)

    try:
        await RelationshipService(db).add(identity.id, str(user_id), EdgeKind.USERS)
    except ServiceError as e:
        raise _http_error(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/users/following/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unfollow_user(user_id: UUID, identity: Identity = Depends(get_current_identity),
                        db: Database = Depends(get_db)):
    """取消关注用户，未关注时不报错"""
    guard = await check_user_exists(db, str(user_id))
    if not guard.ok:
        raise _http_error(guard.error)

    try:
        await RelationshipService(db).remove(identity.id, str(user_id), EdgeKind.USERS)
    except ServiceError as e:
        raise _http_error(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================================
# 关注话题
# ============================================================================

@router.get("/users/{user_id}/followingTopics", response_model=List[Topic])
async def list_following_topics(user_id: UUID, service: RelationshipService = Depends(get_relationship_service)):
    """某个用户关注的话题列表"""
    try:
        return await service.list_following(str(user_id), EdgeKind.TOPICS)
    except ServiceError as e:
        raise _http_error(e)


@router.put("/users/followingTopics/{topic_id}", status_code=status.HTTP_204_NO_CONTENT)
async def follow_topic(topic_id: UUID, identity: Identity = Depends(get_current_identity),
                       db: Database = Depends(get_db)):
    """关注话题"""
    guard = await check_topic_exists(db, str(topic_id))
    if not guard.ok:
        raise _http_error(guard.error)

    try:
        await RelationshipService(db).add(identity.id, str(topic_id), EdgeKind.TOPICS)
    except ServiceError as e:
        raise _http_error(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/users/followingTopics/{topic_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unfollow_topic(topic_id: UUID, identity: Identity = Depends(get_current_identity),
                         db: Database = Depends(get_db)):
    """取消关注话题"""
    guard = await check_topic_exists(db, str(topic_id))
    if not guard.ok:
        raise _http_error(guard.error)

    try:
        await RelationshipService(db).remove(identity.id, str(topic_id), EdgeKind.TOPICS)
    except ServiceError as e:
        raise _http_error(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================================
# 话题
# ============================================================================

@router.post("/topics", response_model=Topic, status_code=status.HTTP_201_CREATED)
async def create_topic(topic_data: TopicCreate, identity: Identity = Depends(get_current_identity),
                       service: TopicService = Depends(get_topic_service)):
    """创建话题（需要登录）"""
    try:
        return await service.create_topic(topic_data)
    except ServiceError as e:
        raise _http_error(e)


@router.get("/topics", response_model=List[Topic])
async def list_topics(q: str = "", page: Optional[str] = None, per_page: Optional[str] = None,
                      service: TopicService = Depends(get_topic_service)):
    """话题列表，分页规则与用户列表相同"""
    return await service.list_topics(q, page, per_page)


@router.get("/topics/{topic_id}", response_model=Topic)
async def get_topic(topic_id: UUID, service: TopicService = Depends(get_topic_service)):
    try:
        return await service.get_topic(str(topic_id))
    except ServiceError as e:
        raise _http_error(e)


@router.get("/topics/{topic_id}/followers", response_model=List[dict])
async def list_topic_followers(topic_id: UUID, db: Database = Depends(get_db)):
    """关注某个话题的用户列表"""
    guard = await check_topic_exists(db, str(topic_id))
    if not guard.ok:
        raise _http_error(guard.error)
    return await RelationshipService(db).list_followers(str(topic_id), EdgeKind.TOPICS)
