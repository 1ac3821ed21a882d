"""
业务错误类型

服务层以异常形式抛出终止性错误，守卫（guards）则把同样的错误对象
放进 GuardResult 返回。端点统一把它们转换成 HTTPException。
"""


class ServiceError(Exception):
    """所有业务错误的基类"""

    status_code = 400
    default_detail = "请求失败"

    def __init__(self, detail: str = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class InvalidCredentials(ServiceError):
    """用户名或密码错误（前置条件失败）"""

    status_code = 412
    default_detail = "用户名或密码错误"


class Conflict(ServiceError):
    """唯一性冲突，例如用户名已存在"""

    status_code = 409
    default_detail = "资源已存在"


class NotFound(ServiceError):
    """引用的实体不存在"""

    status_code = 404
    default_detail = "资源不存在"


class Forbidden(ServiceError):
    """无权操作他人的资源"""

    status_code = 403
    default_detail = "没有权限"


__all__ = ["ServiceError", "InvalidCredentials", "Conflict", "NotFound", "Forbidden"]
