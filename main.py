"""
FastAPI应用主入口
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from api.routes import invoices as invoices_routes
from api.routes import payments as payments_routes
from api.routes import subscriptions as subscriptions_routes
from api.middleware import RequestIDMiddleware, LoggingMiddleware
from core.config import settings
from core.exceptions import register_exception_handlers
from core.response import success_response
from core.settings import checkout_settings
from core.i18n import t
from core.logging_config import get_logger, configure_logging
from infrastructure.database import create_tables, dispose_engine


# 初始化日志：在入口处显式配置
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    # 宿主账单表默认由宿主维护；仅开发环境按模型建表
    if settings.database.auto_create:
        await create_tables()
    if not checkout_settings.webhook_secret:
        logger.warning("checkout_webhook_secret_missing", message="Every webhook will fail signature verification")
    logger.info(
        "application_started",
        gateway=checkout_settings.gateway_name,
        sandbox=checkout_settings.sandbox_mode,
        allow_subscriptions=checkout_settings.allow_subscriptions,
    )

    yield

    await dispose_engine()
    logger.info("application_shutdown", message="Application shutdown")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
    description="Hosted checkout payment gateway for the billing host",
)

# 添加中间件（注意顺序：后添加的先执行）
# 1. 日志中间件（依赖request_id）
app.add_middleware(LoggingMiddleware)

# 2. Request ID中间件（最先执行，为后续中间件提供request_id）
app.add_middleware(RequestIDMiddleware)

# 3. CORS中间件
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 注册全局异常处理器
register_exception_handlers(app)


# 注册路由
app.include_router(payments_routes.router, prefix="/api/v1")
app.include_router(invoices_routes.router, prefix="/api/v1")
app.include_router(subscriptions_routes.router, prefix="/api/v1")


# 根路径
@app.get("/", tags=["Root"])
async def root():
    """API根路径"""
    return success_response(
        data={
            "name": settings.PROJECT_NAME,
            "version": settings.VERSION,
            "docs": "/docs",
            "redoc": "/redoc"
        },
        message=t("welcome")
    )


# 健康检查
@app.get("/health", tags=["Health"])
async def health_check():
    """健康检查端点"""
    return success_response(data={"status": "healthy"}, message=t("health.ok"))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info"
    )
