"""
文章API
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from typing import Optional

from mango_articles.content.blocks import parse_content
from mango_articles.content.renderer import extract_preview, render_blocks, render_html
from mango_articles.db.database import get_db
from mango_articles.models.article import Article
from mango_articles.models.user import User
from mango_articles.schemas.article import (
    ArticleSave, ArticleResponse, ArticleListItem, ArticleListResponse,
    AuthorInfo, BlockResponse, RenderResponse, LikeResponse
)
from mango_articles.schemas.common import ResponseModel
from mango_articles.services.article_service import ArticleService, SlugConflictError, DEFAULT_PAGE_SIZE
from mango_articles.services.like_service import LikeService
from mango_articles.utils.auth import CurrentUser, get_current_author, get_optional_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["文章"])


def storage_error(message: str, error: Exception) -> HTTPException:
    """存储层异常统一转换为500，附带错误详情"""
    logger.exception(message)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"error": message, "details": str(error)}
    )


def author_info(user: Optional[User]) -> Optional[AuthorInfo]:
    if user is None:
        return None
    return AuthorInfo(
        id=user.id,
        username=user.username,
        fullName=user.full_name,
        avatarUrl=user.avatar_url
    )


def article_response(article: Article, author: Optional[User], like_count: int = 0, liked_by_me: bool = False) -> ArticleResponse:
    return ArticleResponse(
        id=article.id,
        slug=article.slug,
        title=article.title,
        excerpt=article.excerpt,
        content=article.content,
        featuredImage=article.featured_image,
        published=article.published,
        authorId=article.author_id,
        author=author_info(author),
        blocks=[BlockResponse(**block.to_dict()) for block in article.blocks],
        likeCount=like_count,
        likedByMe=liked_by_me,
        createdAt=article.created_at,
        updatedAt=article.updated_at
    )


def list_item(article: Article, author: Optional[User], like_count: int) -> ArticleListItem:
    return ArticleListItem(
        id=article.id,
        slug=article.slug,
        title=article.title,
        excerpt=article.excerpt,
        preview=extract_preview(article.content),
        featuredImage=article.featured_image,
        authorId=article.author_id,
        author=author_info(author),
        likeCount=like_count,
        createdAt=article.created_at
    )


async def get_visible_article(
    slug: str,
    db: AsyncSession,
    current_user: Optional[CurrentUser]
) -> Article:
    """
    按slug获取文章，草稿只对作者可见

    Raises:
        HTTPException: 文章不存在（404）
    """
    article = await ArticleService.get_by_slug(db, slug)
    if not article:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="文章不存在")
    if not article.published and (current_user is None or current_user.id != article.author_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="文章不存在")
    return article


@router.get("/articles", response_model=ResponseModel)
async def list_articles(
    page: int = Query(0, ge=0, description="页码，从0开始"),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=50, description="每页数量"),
    authorId: Optional[int] = Query(None, description="作者ID"),
    db: AsyncSession = Depends(get_db)
):
    """
    获取已发布文章列表
    """
    try:
        rows, next_page = await ArticleService.list_published(db, page=page, limit=limit, author_id=authorId)
    except SQLAlchemyError as e:
        raise storage_error("Failed to fetch articles", e)

    return ResponseModel(
        code=200,
        message="获取成功",
        data=ArticleListResponse(
            articles=[list_item(article, author, like_count) for article, author, like_count in rows],
            nextPage=next_page
        )
    )


@router.post("/articles", response_model=ResponseModel)
@router.put("/articles", response_model=ResponseModel)
async def save_article(
    article_data: ArticleSave,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_author)
):
    """
    保存文章：不带id时创建，带id时更新

    - 缺少标题、slug或正文：400
    - 创建时slug已存在：409，已有文章不受影响
    - 更新的文章不存在：404；不是作者本人：403
    """
    if not article_data.title or not article_data.slug or article_data.content is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="标题、slug和正文不能为空"
        )

    content = parse_content(article_data.content)
    if not isinstance(content, (dict, list)):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="正文格式错误，应为块结构文档"
        )

    data = {
        "title": article_data.title,
        "slug": article_data.slug,
        "content": content,
        "excerpt": article_data.excerpt,
        "featured_image": article_data.featuredImage,
        "published": article_data.published
    }

    logger.info(
        "Saving article slug=%s author=%s published=%s update=%s",
        article_data.slug, current_user.id, article_data.published, article_data.id is not None
    )

    try:
        if article_data.id is not None:
            article = await ArticleService.get_by_id(db, article_data.id)
            if not article:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="文章不存在")
            if article.author_id != current_user.id:
                raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="无权编辑此文章")
            article = await ArticleService.update(db, article, data)
            message = "文章发布成功" if article.published else "草稿已更新"
        else:
            article = await ArticleService.create(db, current_user.id, data)
            message = "文章发布成功" if article.published else "草稿已保存"

        author = await ArticleService.get_author(db, article.author_id)
        like_count = await LikeService.count(db, article.id)
    except SlugConflictError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="该slug已被使用，请换一个标题或slug"
        )
    except SQLAlchemyError as e:
        raise storage_error("Failed to save article", e)

    return ResponseModel(
        code=200,
        message=message,
        data=article_response(article, author, like_count)
    )


@router.get("/articles/{slug}", response_model=ResponseModel)
async def get_article(
    slug: str,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[CurrentUser] = Depends(get_optional_user)
):
    """
    获取文章详情（含有序块和点赞数）
    """
    try:
        article = await get_visible_article(slug, db, current_user)
        author = await ArticleService.get_author(db, article.author_id)
        like_count = await LikeService.count(db, article.id)
        liked_by_me = False
        if current_user is not None and not current_user.is_guest:
            liked_by_me = await LikeService.is_liked(db, current_user.id, article.id)
    except SQLAlchemyError as e:
        raise storage_error("Failed to fetch article", e)

    return ResponseModel(
        code=200,
        message="获取成功",
        data=article_response(article, author, like_count, liked_by_me)
    )


@router.get("/articles/{slug}/render", response_model=ResponseModel)
async def render_article(
    slug: str,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[CurrentUser] = Depends(get_optional_user)
):
    """
    渲染文章正文为展示节点和HTML
    """
    try:
        article = await get_visible_article(slug, db, current_user)
    except SQLAlchemyError as e:
        raise storage_error("Failed to fetch article", e)

    nodes = render_blocks(article.content)
    return ResponseModel(
        code=200,
        message="获取成功",
        data=RenderResponse(
            slug=article.slug,
            nodes=[node.to_dict() for node in nodes],
            html=render_html(article.content)
        )
    )


@router.post("/articles/{slug}/like", response_model=ResponseModel)
async def toggle_like(
    slug: str,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_author)
):
    """
    点赞/取消点赞
    """
    try:
        article = await get_visible_article(slug, db, current_user)
        result = await LikeService.toggle(db, current_user.id, article.id)
    except SQLAlchemyError as e:
        raise storage_error("Failed to toggle like", e)

    return ResponseModel(
        code=200,
        message="点赞成功" if result.liked else "已取消点赞",
        data=LikeResponse(liked=result.liked, likeCount=result.like_count)
    )
