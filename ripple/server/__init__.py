# Server package

# 暴露主要的服务端类和函数
from .db import Database
from .services import CredentialService, UserService, RelationshipService, TopicService
from .server import RippleServer, get_app

__all__ = [
    "Database",
    "CredentialService",
    "UserService",
    "RelationshipService",
    "TopicService",
    "RippleServer",
    "get_app",
]
