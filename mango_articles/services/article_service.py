"""
文章服务

文章正文以块结构文档整体存储在 articles.content，同时在 article_blocks 表
维护扁平化的块投影（类型、内容、顺序）。更新时两者在同一事务中替换。
"""
import logging
from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, and_, desc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload
from mango_articles.content.blocks import block_projection, parse_content
from mango_articles.models.article import Article
from mango_articles.models.article_block import ArticleBlock
from mango_articles.models.like import Like
from mango_articles.models.user import User

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 6


class SlugConflictError(Exception):
    """slug 已被其他文章使用"""

    def __init__(self, slug: str):
        super().__init__(f"Slug already exists: {slug}")
        self.slug = slug


def _build_blocks(content: Any) -> List[ArticleBlock]:
    return [
        ArticleBlock(type=item["type"], content=item["content"], order=item["order"])
        for item in block_projection(content)
    ]


class ArticleService:
    """文章服务类"""

    @staticmethod
    async def get_by_id(db: AsyncSession, article_id: int) -> Optional[Article]:
        result = await db.execute(
            select(Article)
            .options(selectinload(Article.blocks))
            .where(Article.id == article_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_slug(db: AsyncSession, slug: str) -> Optional[Article]:
        result = await db.execute(
            select(Article)
            .options(selectinload(Article.blocks))
            .where(Article.slug == slug)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def slug_taken(db: AsyncSession, slug: str, exclude_id: Optional[int] = None) -> bool:
        conditions = [Article.slug == slug]
        if exclude_id is not None:
            conditions.append(Article.id != exclude_id)
        result = await db.execute(select(Article.id).where(and_(*conditions)))
        return result.first() is not None

    @classmethod
    async def create(cls, db: AsyncSession, author_id: int, data: Dict[str, Any]) -> Article:
        """
        创建文章及其块投影

        Args:
            db: 数据库会话
            author_id: 作者ID
            data: title / slug / content / excerpt / featured_image / published

        Returns:
            Article: 新文章（已加载块）

        Raises:
            SlugConflictError: slug 已存在，此时不写入任何数据
        """
        slug = data["slug"]
        if await cls.slug_taken(db, slug):
            raise SlugConflictError(slug)

        content = parse_content(data["content"])
        article = Article(
            slug=slug,
            title=data["title"],
            excerpt=data.get("excerpt"),
            content=content,
            featured_image=data.get("featured_image"),
            published=bool(data.get("published")),
            author_id=author_id,
            blocks=_build_blocks(content)
        )
        db.add(article)
        try:
            await db.commit()
        except IntegrityError as e:
            # 并发创建同一slug
            await db.rollback()
            raise SlugConflictError(slug) from e

        logger.info("Created article %s (id=%s, blocks=%d)", slug, article.id, len(article.blocks))
        return await cls.get_by_id(db, article.id)

    @classmethod
    async def update(cls, db: AsyncSession, article: Article, data: Dict[str, Any]) -> Article:
        """
        更新文章，整体替换块投影

        文章字段和块在同一次提交中写入，任一失败都整体回滚

        Raises:
            SlugConflictError: 新slug已被其他文章使用
        """
        slug = data["slug"]
        if slug != article.slug and await cls.slug_taken(db, slug, exclude_id=article.id):
            raise SlugConflictError(slug)

        content = parse_content(data["content"])
        article.slug = slug
        article.title = data["title"]
        article.excerpt = data.get("excerpt")
        article.content = content
        article.featured_image = data.get("featured_image")
        article.published = bool(data.get("published"))
        article.blocks = _build_blocks(content)

        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            raise SlugConflictError(slug) from e

        logger.info("Updated article %s (id=%s)", slug, article.id)
        return await cls.get_by_id(db, article.id)

    @staticmethod
    async def list_published(
        db: AsyncSession,
        page: int = 0,
        limit: int = DEFAULT_PAGE_SIZE,
        author_id: Optional[int] = None
    ) -> Tuple[List[Tuple[Article, User, int]], Optional[int]]:
        """
        分页列出已发布文章，按更新时间倒序

        Args:
            page: 页码，从0开始
            limit: 每页数量
            author_id: 只列出该作者的文章

        Returns:
            ([(文章, 作者, 点赞数)], 下一页页码或None)
        """
        like_counts = (
            select(Like.article_id, func.count(Like.id).label("like_count"))
            .group_by(Like.article_id)
            .subquery()
        )
        conditions = [Article.published == True]
        if author_id is not None:
            conditions.append(Article.author_id == author_id)

        # 多取一条判断是否还有下一页
        stmt = (
            select(Article, User, func.coalesce(like_counts.c.like_count, 0))
            .join(User, User.id == Article.author_id)
            .outerjoin(like_counts, like_counts.c.article_id == Article.id)
            .where(and_(*conditions))
            .order_by(desc(Article.updated_at), desc(Article.id))
            .offset(page * limit)
            .limit(limit + 1)
        )
        rows = list((await db.execute(stmt)).all())

        next_page = page + 1 if len(rows) > limit else None
        return [tuple(row) for row in rows[:limit]], next_page

    @staticmethod
    async def count_published_by_author(db: AsyncSession, author_id: int) -> int:
        result = await db.execute(
            select(func.count(Article.id)).where(
                and_(Article.author_id == author_id, Article.published == True)
            )
        )
        return result.scalar() or 0

    @staticmethod
    async def get_author(db: AsyncSession, author_id: int) -> Optional[User]:
        result = await db.execute(select(User).where(User.id == author_id))
        return result.scalar_one_or_none()
