"""
凭证相关的底层工具

- 密码：bcrypt 哈希与校验
- 令牌：PyJWT 签发与校验，载荷只包含 {name, id} 与过期时间
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
import jwt

from .config import Settings, get_settings

# 由令牌库维护的声明，不属于身份信息
REGISTERED_CLAIMS = ("exp", "iat", "nbf")


def hash_password(password: str) -> str:
    """使用 bcrypt 生成密码哈希"""
    hashed = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt())
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    """校验密码与存储的 bcrypt 哈希是否匹配"""
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # 存储的值不是合法的 bcrypt 哈希
        return False


class TokenIssuer:
    """
    会话令牌签发器

    无状态：令牌本身携带身份和过期时间，服务端不保存会话。
    """

    def __init__(self, secret: str, algorithm: str = "HS256", expires_seconds: int = 86400):
        self.secret = secret
        self.algorithm = algorithm
        self.expires_seconds = expires_seconds

    @classmethod
    def from_settings(cls, settings: Settings = None) -> "TokenIssuer":
        settings = settings or get_settings()
        return cls(
            secret=settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            expires_seconds=settings.token_expires_seconds,
        )

    def sign(self, claims: Dict[str, Any]) -> str:
        """签发令牌，过期时间由签发器统一设置"""
        payload = dict(claims)
        payload["exp"] = datetime.now(timezone.utc) + timedelta(seconds=self.expires_seconds)
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> Dict[str, Any]:
        """
        校验并解码令牌

        Raises:
            jwt.PyJWTError: 签名无效、格式错误或已过期
        """
        payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        return {key: value for key, value in payload.items() if key not in REGISTERED_CLAIMS}


__all__ = ["hash_password", "verify_password", "TokenIssuer", "REGISTERED_CLAIMS"]
