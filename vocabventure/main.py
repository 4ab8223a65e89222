#!/usr/bin/env python3
"""
VocabVenture 阅读进度引擎 - FastAPI 主应用入口
Description: 为桌面端和移动端提供统一的调用接口（/api/v1/invoke）和 REST 接口
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from vocabventure.config.settings import settings
from vocabventure.services.engine_service import ReadingEngine
from vocabventure.utils.database import LocalStore
from vocabventure.utils.logger import setup_logging

logger = logging.getLogger(__name__)


def create_application(database_url: Optional[str] = None, configure_logging: bool = True) -> FastAPI:
    """创建并配置FastAPI应用实例"""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        应用生命周期管理
        - 启动时建表、迁移并创建阅读引擎；建表失败直接中止启动
        - 关闭时释放数据库连接
        """
        if configure_logging:
            setup_logging()
        logger.info("初始化阅读进度引擎...")

        store = LocalStore(database_url)
        try:
            store.open()
        except Exception as e:
            logger.error(f"应用启动失败: {e}")
            raise

        app.state.store = store
        app.state.engine = ReadingEngine(store)
        if store.legacy_mode:
            logger.warning("数据库处于旧结构兼容模式")
        logger.info("阅读进度引擎启动完成")

        yield  # 应用运行期间

        logger.info("正在关闭阅读进度引擎...")
        store.close()
        logger.info("阅读进度引擎已安全关闭")

    app = FastAPI(
        title=settings.APP_NAME,
        description="儿童阅读应用的本地进度、测验和徽章引擎",
        version=settings.APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    # 配置CORS中间件
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 全局异常处理
    @app.exception_handler(HTTPException)
    async def http_exception_handler(request, exc):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail}
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request, exc):
        logger.error(f"未处理的异常: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": settings.FRIENDLY_RETRY_MESSAGE}
        )

    from vocabventure.api.routes import auth, badges, invoke, progress, quizzes

    # 注册API路由
    app.include_router(invoke.router, prefix="/api/v1/invoke", tags=["统一调用"])
    app.include_router(auth.router, prefix="/api/v1/auth", tags=["用户认证"])
    app.include_router(progress.router, prefix="/api/v1/progress", tags=["阅读进度"])
    app.include_router(quizzes.router, prefix="/api/v1/quizzes", tags=["测验"])
    app.include_router(badges.router, prefix="/api/v1/badges", tags=["徽章"])

    @app.get("/")
    async def root():
        """根路径"""
        return {
            "name": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "docs": "/docs"
        }

    @app.get("/health")
    async def health_check():
        """健康检查端点"""
        store: LocalStore = app.state.store
        db_status = store.check_connection()

        return {
            "status": "healthy" if db_status else "unhealthy",
            "database": "connected" if db_status else "disconnected",
            "legacy_mode": store.legacy_mode,
            "timestamp": datetime.now(timezone.utc).isoformat()
        }

    return app


# 创建应用实例
app = create_application()

if __name__ == "__main__":
    """开发环境直接运行"""
    uvicorn.run(
        "vocabventure.main:app",
        host="127.0.0.1",
        port=8000,
        reload=True,  # 开发模式热重载
        log_level="info",
    )
