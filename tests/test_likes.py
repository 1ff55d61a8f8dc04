"""
测试点赞切换
"""
from sqlalchemy import select, func

from mango_articles.models.like import Like
from mango_articles.services.article_service import ArticleService
from mango_articles.services.like_service import LikeService


async def create_article(session, author_id, slug="liked-article"):
    content = {"time": 1, "version": "2.26.5", "blocks": [{"type": "paragraph", "data": {"text": "Like me"}}]}
    return await ArticleService.create(session, author_id, {
        "title": "Liked",
        "slug": slug,
        "content": content,
        "published": True,
    })


async def test_toggle_twice_leaves_no_rows(session, author):
    """点赞两次后没有点赞记录"""
    article = await create_article(session, author.id)

    first = await LikeService.toggle(session, author.id, article.id)
    assert first.liked is True
    assert first.like_count == 1

    second = await LikeService.toggle(session, author.id, article.id)
    assert second.liked is False
    assert second.like_count == 0

    rows = (await session.execute(
        select(func.count(Like.id)).where(Like.user_id == author.id, Like.article_id == article.id)
    )).scalar()
    assert rows == 0


async def test_duplicate_insert_counts_as_liked(session, author, monkeypatch):
    """并发重复提交触发唯一约束时视为已点赞"""
    article = await create_article(session, author.id)
    await LikeService.toggle(session, author.id, article.id)

    async def not_found(db, user_id, article_id):
        # 模拟另一个请求在查询之后、写入之前已插入
        return None

    monkeypatch.setattr(LikeService, "find", not_found)
    result = await LikeService.toggle(session, author.id, article.id)

    assert result.liked is True
    assert result.like_count == 1


async def test_like_api(client, author, author_headers, guest_headers, session):
    await create_article(session, author.id, slug="api-like")

    assert (await client.post("/api/articles/api-like/like")).status_code == 401
    assert (await client.post("/api/articles/api-like/like", headers=guest_headers)).status_code == 403
    assert (await client.post("/api/articles/missing/like", headers=author_headers)).status_code == 404

    response = await client.post("/api/articles/api-like/like", headers=author_headers)
    assert response.status_code == 200
    assert response.json()["data"] == {"liked": True, "likeCount": 1}

    detail = (await client.get("/api/articles/api-like", headers=author_headers)).json()["data"]
    assert detail["likeCount"] == 1
    assert detail["likedByMe"] is True

    response = await client.post("/api/articles/api-like/like", headers=author_headers)
    assert response.json()["data"] == {"liked": False, "likeCount": 0}
