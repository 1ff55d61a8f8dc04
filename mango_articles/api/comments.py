"""
评论API
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from typing import Optional

from mango_articles.api.articles import author_info, get_visible_article, storage_error
from mango_articles.db.database import get_db
from mango_articles.schemas.article import CommentCreate, CommentResponse
from mango_articles.schemas.common import ResponseModel
from mango_articles.services.article_service import ArticleService
from mango_articles.services.comment_service import CommentService
from mango_articles.utils.auth import CurrentUser, get_current_author, get_optional_user

router = APIRouter(prefix="/api", tags=["评论"])


@router.get("/articles/{slug}/comments", response_model=ResponseModel)
async def list_comments(
    slug: str,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[CurrentUser] = Depends(get_optional_user)
):
    """
    获取文章评论列表
    """
    try:
        article = await get_visible_article(slug, db, current_user)
        rows = await CommentService.list_for_article(db, article.id)
    except SQLAlchemyError as e:
        raise storage_error("Failed to fetch comments", e)

    return ResponseModel(
        code=200,
        message="获取成功",
        data=[
            CommentResponse(
                id=comment.id,
                articleId=comment.article_id,
                author=author_info(author),
                content=comment.content,
                createdAt=comment.created_at
            )
            for comment, author in rows
        ]
    )


@router.post("/articles/{slug}/comments", response_model=ResponseModel, status_code=status.HTTP_201_CREATED)
async def create_comment(
    slug: str,
    comment_data: CommentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_author)
):
    """
    发表评论
    """
    try:
        article = await get_visible_article(slug, db, current_user)
        comment = await CommentService.create(db, article.id, current_user.id, comment_data.content)
        author = await ArticleService.get_author(db, current_user.id)
    except SQLAlchemyError as e:
        raise storage_error("Failed to create comment", e)

    return ResponseModel(
        code=201,
        message="评论成功",
        data=CommentResponse(
            id=comment.id,
            articleId=comment.article_id,
            author=author_info(author),
            content=comment.content,
            createdAt=comment.created_at
        )
    )
