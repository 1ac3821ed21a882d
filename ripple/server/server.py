"""
Ripple Server - 服务器启动封装

提供开箱即用的服务器启动能力
"""
import sys
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request

from .config import get_settings
from .endpoints import router
from .init import check_environment, migrate_database
from .logger import get_logger, log_access

logger = get_logger("RippleServer")


def get_app() -> FastAPI:
    """创建 FastAPI 应用实例"""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # 启动时只做迁移，不重置数据
        migrate_database()
        logger.info("FastAPI 应用启动完成")
        yield
        logger.info("FastAPI 应用正在关闭...")

    app = FastAPI(
        title="Ripple Server",
        description="用户账号与关注关系服务",
        version="0.1.0",
        lifespan=lifespan
    )

    @app.middleware("http")
    async def access_log_middleware(request: Request, call_next):
        """记录每个请求的方法、路径、状态码、耗时和请求者"""
        start = time.perf_counter()
        response = await call_next(request)
        log_access(
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - start) * 1000,
            getattr(request.state, "user_id", None),
        )
        return response

    # 注册路由
    app.include_router(router)
    return app


class RippleServer:
    """
    Ripple 服务器

    Examples:
        >>> server = RippleServer(db_path="ripple.db")
        >>> server.run()

        >>> server = RippleServer(db_path="my_app.db", host="127.0.0.1", port=9000)
        >>> server.run()
    """

    def __init__(
        self,
        db_path: Optional[str] = None,
        host: Optional[str] = None,
        port: Optional[int] = None,
    ):
        """
        Args:
            db_path: SQLite 数据库路径，默认取配置中的 SQLITE_PATH
            host: 服务监听地址，默认取配置中的 HOST
            port: 服务监听端口，默认取配置中的 PORT
        """
        settings = get_settings()
        self.db_path = db_path or settings.sqlite_path
        self.host = host or settings.host
        self.port = port or settings.port

        # 让请求内的 get_db 与启动迁移使用同一个数据库
        settings.sqlite_path = self.db_path

    def _validate_config(self):
        """验证必备配置"""
        errors = []

        if not self.db_path:
            errors.append("❌ 缺少数据库路径配置")

        if self.port < 1 or self.port > 65535:
            errors.append(f"❌ 端口号无效: {self.port}，必须在 1-65535 之间")

        if errors:
            logger.error("配置验证失败:")
            for error in errors:
                logger.error(f"  {error}")
            raise ValueError("缺少必备配置，服务无法启动")

        logger.info("✅ 配置验证通过")
        logger.info(f"   Database: {self.db_path}")

    def run(self):
        """
        启动 Ripple 服务器

        Raises:
            ValueError: 配置验证失败
        """
        import uvicorn

        try:
            logger.info("=" * 60)
            logger.info("🚀 Ripple Server 启动中...")
            logger.info("=" * 60)

            self._validate_config()

            if not check_environment():
                raise RuntimeError("环境检查失败")

            logger.info(f"📍 FastAPI Server: http://{self.host}:{self.port}")
            uvicorn.run(
                "ripple.server.server:get_app",
                host=self.host,
                port=self.port,
                log_level="info",
                factory=True
            )

        except KeyboardInterrupt:
            logger.info("收到停止信号，服务已关闭")

        except Exception as e:
            logger.error(f"❌ 服务启动失败: {str(e)}")
            sys.exit(1)


def main():
    """命令行入口：ripple-server"""
    RippleServer().run()
