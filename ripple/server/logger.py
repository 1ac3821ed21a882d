"""
统一的日志配置模块

使用 loguru 提供日志配置，日志级别、格式与输出目标均由环境变量决定：
LOG_LEVEL / LOG_FORMAT / LOG_TO_CONSOLE / LOG_TO_FILE / LOG_FILE_PATH / LOG_ACCESS

每条日志带有 ``name`` 标识（通过 get_logger 绑定）；HTTP 访问日志统一以
``Access`` 为名，按响应状态码选择级别，并记录发起请求的用户 id。
"""
import os
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

logger.remove()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.getenv("LOG_FORMAT",
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)
LOG_TO_CONSOLE = os.getenv("LOG_TO_CONSOLE", "true").lower() == "true"
LOG_TO_FILE = os.getenv("LOG_TO_FILE", "false").lower() == "true"
LOG_FILE_PATH = os.getenv("LOG_FILE_PATH", "logs/ripple-server.log")
LOG_ACCESS = os.getenv("LOG_ACCESS", "true").lower() == "true"

# 未通过 get_logger 绑定名称的日志也能正常格式化
logger.configure(extra={"name": "ripple"})

ANONYMOUS = "-"


def setup_logger():
    """根据环境变量添加控制台和文件输出"""
    if LOG_TO_CONSOLE:
        logger.add(
            sys.stdout,
            format=LOG_FORMAT,
            level=LOG_LEVEL,
            colorize=True,
            backtrace=True,
            # 异常回溯中不展开变量值，避免密码和令牌进入日志
            diagnose=False
        )

    if LOG_TO_FILE:
        Path(LOG_FILE_PATH).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            LOG_FILE_PATH,
            format=LOG_FORMAT,
            level=LOG_LEVEL,
            rotation="10 MB",
            retention="30 days",
            compression="zip",
            backtrace=True,
            diagnose=False
        )

    logger.debug(
        f"日志系统已初始化 - 级别: {LOG_LEVEL}, 控制台: {LOG_TO_CONSOLE}, "
        f"文件: {LOG_TO_FILE}, 访问日志: {LOG_ACCESS}"
    )


def get_logger(name: str = None):
    """
    获取 logger 实例

    Args:
        name: 模块名称，用于日志标识

    Returns:
        loguru.Logger: 绑定了名称的 logger 实例
    """
    if name:
        return logger.bind(name=name)
    return logger


access_logger = get_logger("Access")


def access_level(status_code: int) -> str:
    """5xx 记为 ERROR，4xx 记为 WARNING，其余为 INFO"""
    if status_code >= 500:
        return "ERROR"
    if status_code >= 400:
        return "WARNING"
    return "INFO"


def log_access(method: str, path: str, status_code: int, duration_ms: float,
               user_id: Optional[str] = None):
    """记录一条 HTTP 访问日志"""
    if not LOG_ACCESS:
        return
    access_logger.bind(user_id=user_id or ANONYMOUS).log(
        access_level(status_code),
        f"{method} {path} {status_code} {duration_ms:.1f}ms user={user_id or ANONYMOUS}"
    )


setup_logger()

__all__ = ["logger", "get_logger", "setup_logger", "access_level", "log_access"]
