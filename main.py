"""
FastAPI应用主入口
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.middleware import RequestIDMiddleware, LoggingMiddleware
from api.routes import uploads as upload_routes
from application.dto import HealthDTO
from core.config import settings
from core.exceptions import register_exception_handlers
from core.logging_config import get_logger, configure_logging
from core.response import Response as ApiResponse, success_response
from infrastructure.external.storage import (
    get_storage_client,
    get_storage_config,
    init_storage_client,
    shutdown_storage_client,
)


# 初始化日志：在入口处显式配置，避免模块导入时的副作用
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    # 存储客户端（凭据、连接池）只在启动时创建一次，请求间只读共享
    config = get_storage_config()
    try:
        await init_storage_client(config)
        logger.info(
            "storage_initialized",
            provider=config.type,
            bucket=config.bucket,
        )
    except Exception as exc:
        # 不阻断启动；上传请求会以 credentials 阶段失败返回 503
        logger.error("storage_init_failed", provider=config.type, error=str(exc))

    yield

    await shutdown_storage_client()
    logger.info("application_shutdown", message="Application shutdown")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
    description="多文件分片上传到对象存储",
)

# 添加中间件（注意顺序：从下往上执行）
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
app.include_router(upload_routes.router, prefix="/api/v1")


# 健康检查
@app.get("/health", tags=["Health"], response_model=ApiResponse[HealthDTO])
async def health_check():
    """健康检查端点"""
    storage = "ready" if get_storage_client() is not None else "unavailable"
    return success_response(data=HealthDTO(status="healthy", storage=storage))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info"
    )
