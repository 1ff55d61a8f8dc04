"""
数据库连接和会话管理

存储句柄（引擎 + 会话工厂）在应用启动时创建一次，挂在 app.state.db 上，
通过 get_db 依赖注入到每个请求，直到进程退出才释放。
"""
import asyncio
import logging
from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy import BigInteger, Integer, JSON, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

# 创建Base类
Base = declarative_base()

# 通用列类型：PostgreSQL 使用 BIGINT/JSONB，SQLite（测试）退化为 INTEGER/JSON
IdType = BigInteger().with_variant(Integer, "sqlite")
JSONType = JSON().with_variant(JSONB, "postgresql")


class Database:
    """数据库句柄"""

    def __init__(self, url: str, echo: bool = False):
        engine_kwargs = {"echo": echo}
        if url.startswith("sqlite"):
            # 内存SQLite需要所有会话共享同一个连接
            engine_kwargs.update(
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
        else:
            engine_kwargs.update(
                pool_pre_ping=True,
                pool_size=10,
                max_overflow=20,
            )

        # 创建异步引擎
        self.engine = create_async_engine(url, **engine_kwargs)

        # 创建会话工厂
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autocommit=False,
            autoflush=False,
        )

    async def create_all(self):
        """建表（开发环境/测试使用）"""
        # 导入模型以注册到Base.metadata
        import mango_articles.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def ping(self, timeout: float) -> bool:
        """
        检查数据库连通性

        Args:
            timeout: 超时时间（秒）

        Returns:
            bool: 是否可以连接
        """
        async def _check():
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))

        try:
            await asyncio.wait_for(_check(), timeout=timeout)
            return True
        except Exception as e:
            logger.warning("Database ping failed: %s", e)
            return False

    async def dispose(self):
        """释放连接池"""
        await self.engine.dispose()


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    获取数据库会话依赖
    """
    database: Database = request.app.state.db
    async with database.session_factory() as session:
        try:
            yield session
        finally:
            await session.close()
