"""
Mango Articles - FastAPI应用主入口
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from mango_articles.core.config import settings
from mango_articles.db.database import Database
from mango_articles.services.upload_service import ImageUploader
from mango_articles.api import articles, auth, authors, comments, upload

logger = logging.getLogger(__name__)


def configure_logging():
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    # 存储句柄和上传客户端在启动时创建一次，进程退出时释放
    app.state.db = Database(settings.DATABASE_URL, echo=settings.DEBUG)
    app.state.uploader = ImageUploader.from_settings()
    if settings.AUTO_CREATE_TABLES:
        await app.state.db.create_all()
    if not app.state.uploader.mock and not app.state.uploader.configured:
        logger.warning("ImageKit credentials missing, uploads will fail")
    logger.info("%s %s started", settings.APP_NAME, settings.APP_VERSION)
    try:
        yield
    finally:
        await app.state.db.dispose()
        logger.info("Database connections closed")


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """请求参数校验失败统一返回400"""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())}
    )


def create_app() -> FastAPI:
    configure_logging()

    # 创建FastAPI应用
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Mango Articles 文章发布平台后端API",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    # 配置CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"]
    )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # 注册路由
    app.include_router(auth.router)
    app.include_router(articles.router)
    app.include_router(comments.router)
    app.include_router(authors.router)
    app.include_router(upload.router)

    @app.get("/")
    async def root():
        """根路径"""
        return {
            "app": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "message": "Mango Articles 后端API正在运行"
        }

    @app.get("/health")
    async def health_check(request: Request):
        """健康检查（数据库探测有超时上限）"""
        database_ok = await request.app.state.db.ping(settings.DB_HEALTH_TIMEOUT_SECONDS)
        if not database_ok:
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "unhealthy", "database": "unreachable"}
            )
        return {"status": "healthy", "database": "ok"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
