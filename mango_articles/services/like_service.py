"""
点赞服务
"""
import logging
from dataclasses import dataclass
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, and_
from sqlalchemy.exc import IntegrityError
from mango_articles.models.like import Like

logger = logging.getLogger(__name__)


@dataclass
class LikeToggleResult:
    liked: bool
    like_count: int


class LikeService:
    """点赞服务类"""

    @staticmethod
    async def count(db: AsyncSession, article_id: int) -> int:
        result = await db.execute(
            select(func.count(Like.id)).where(Like.article_id == article_id)
        )
        return result.scalar() or 0

    @staticmethod
    async def find(db: AsyncSession, user_id: int, article_id: int) -> Optional[Like]:
        result = await db.execute(
            select(Like).where(and_(Like.user_id == user_id, Like.article_id == article_id))
        )
        return result.scalar_one_or_none()

    @classmethod
    async def is_liked(cls, db: AsyncSession, user_id: int, article_id: int) -> bool:
        return await cls.find(db, user_id, article_id) is not None

    @classmethod
    async def toggle(cls, db: AsyncSession, user_id: int, article_id: int) -> LikeToggleResult:
        """
        切换点赞状态

        已点赞则取消，否则新增。并发重复提交触发唯一约束时视为已点赞。

        Args:
            db: 数据库会话
            user_id: 用户ID
            article_id: 文章ID

        Returns:
            LikeToggleResult: 切换后的状态和点赞数
        """
        existing = await cls.find(db, user_id, article_id)

        if existing:
            await db.delete(existing)
            await db.commit()
            liked = False
        else:
            db.add(Like(user_id=user_id, article_id=article_id))
            try:
                await db.commit()
            except IntegrityError:
                await db.rollback()
                logger.info("Duplicate like for user %s on article %s, treating as liked", user_id, article_id)
            liked = True

        return LikeToggleResult(liked=liked, like_count=await cls.count(db, article_id))
