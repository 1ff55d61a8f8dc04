"""
作者API
"""
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError

from mango_articles.api.articles import list_item, storage_error
from mango_articles.db.database import get_db
from mango_articles.models.user import User
from mango_articles.schemas.article import ArticleListResponse, AuthorProfile
from mango_articles.schemas.common import ResponseModel
from mango_articles.services.article_service import ArticleService, DEFAULT_PAGE_SIZE
from mango_articles.services.auth_service import AuthService

router = APIRouter(prefix="/api", tags=["作者"])


async def get_author_or_404(db: AsyncSession, username: str) -> User:
    author = await AuthService.get_by_username(db, username)
    if not author:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="作者不存在")
    return author


@router.get("/authors/{username}", response_model=ResponseModel)
async def get_author(
    username: str,
    db: AsyncSession = Depends(get_db)
):
    """
    获取作者主页信息（含已发布文章数）
    """
    try:
        author = await get_author_or_404(db, username)
        article_count = await ArticleService.count_published_by_author(db, author.id)
    except SQLAlchemyError as e:
        raise storage_error("Failed to fetch author", e)

    return ResponseModel(
        code=200,
        message="获取成功",
        data=AuthorProfile(
            id=author.id,
            username=author.username,
            fullName=author.full_name,
            avatarUrl=author.avatar_url,
            bio=author.bio,
            articleCount=article_count,
            createdAt=author.created_at
        )
    )


@router.get("/authors/{username}/articles", response_model=ResponseModel)
async def list_author_articles(
    username: str,
    page: int = Query(0, ge=0, description="页码，从0开始"),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=50, description="每页数量"),
    db: AsyncSession = Depends(get_db)
):
    """
    获取作者已发布的文章
    """
    try:
        author = await get_author_or_404(db, username)
        rows, next_page = await ArticleService.list_published(db, page=page, limit=limit, author_id=author.id)
    except SQLAlchemyError as e:
        raise storage_error("Failed to fetch author articles", e)

    return ResponseModel(
        code=200,
        message="获取成功",
        data=ArticleListResponse(
            articles=[list_item(article, user, like_count) for article, user, like_count in rows],
            nextPage=next_page
        )
    )
