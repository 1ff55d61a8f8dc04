"""
评论服务
"""
from typing import List, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, asc
from mango_articles.models.comment import Comment
from mango_articles.models.user import User


class CommentService:
    """评论服务类"""

    @staticmethod
    async def list_for_article(db: AsyncSession, article_id: int) -> List[Tuple[Comment, User]]:
        """按发表时间升序列出评论及其作者"""
        result = await db.execute(
            select(Comment, User)
            .join(User, User.id == Comment.author_id)
            .where(Comment.article_id == article_id)
            .order_by(asc(Comment.created_at), asc(Comment.id))
        )
        return list(result.all())

    @staticmethod
    async def create(db: AsyncSession, article_id: int, author_id: int, content: str) -> Comment:
        comment = Comment(article_id=article_id, author_id=author_id, content=content)
        db.add(comment)
        await db.commit()
        await db.refresh(comment)
        return comment
