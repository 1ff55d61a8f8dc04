"""
测试文章API
"""
from sqlalchemy import select, func
from sqlalchemy.exc import OperationalError

from mango_articles.models.article_block import ArticleBlock
from mango_articles.services.article_service import ArticleService
from mango_articles.services.like_service import LikeService


def article_payload(content, **overrides):
    payload = {
        "title": "Hello Mango",
        "slug": "hello-mango",
        "content": content,
        "excerpt": "A first article",
        "featuredImage": "https://img.example.com/cover.png",
        "published": True,
    }
    payload.update(overrides)
    return payload


async def test_create_requires_authentication(client, make_content):
    response = await client.post("/api/articles", json=article_payload(make_content()))
    assert response.status_code == 401


async def test_guest_cannot_create(client, guest_headers, make_content):
    response = await client.post("/api/articles", json=article_payload(make_content()), headers=guest_headers)
    assert response.status_code == 403


async def test_missing_fields_rejected(client, author_headers, make_content):
    response = await client.post("/api/articles", json=article_payload(make_content(), title=""), headers=author_headers)
    assert response.status_code == 400

    response = await client.post("/api/articles", json={"title": "No body", "slug": "no-body"}, headers=author_headers)
    assert response.status_code == 400


async def test_create_and_fetch_article(client, author, author_headers, make_content):
    content = make_content(
        {"id": "a", "type": "paragraph", "data": {"text": "Intro"}},
        {"id": "b", "type": "header", "data": {"text": "Part 1", "level": 2}},
        {"id": "c", "type": "image", "data": {"src": "https://img.example.com/1.png", "alt": "one"}},
    )
    response = await client.post("/api/articles", json=article_payload(content), headers=author_headers)
    assert response.status_code == 200
    created = response.json()["data"]
    assert created["authorId"] == author.id
    assert [b["type"] for b in created["blocks"]] == ["paragraph", "header", "image"]
    assert [b["order"] for b in created["blocks"]] == [0, 1, 2]

    response = await client.get("/api/articles/hello-mango")
    assert response.status_code == 200
    article = response.json()["data"]
    assert article["title"] == "Hello Mango"
    assert article["author"]["username"] == "mango"
    assert article["likeCount"] == 0
    assert article["content"]["blocks"][0]["data"] == {"text": "Intro"}


async def test_duplicate_slug_conflict_leaves_existing_unchanged(client, author_headers, other_headers, make_content):
    """重复slug返回409，已有文章不变"""
    original = make_content({"type": "paragraph", "data": {"text": "Original"}})
    response = await client.post("/api/articles", json=article_payload(original), headers=author_headers)
    assert response.status_code == 200

    duplicate = make_content({"type": "paragraph", "data": {"text": "Impostor"}})
    response = await client.post(
        "/api/articles",
        json=article_payload(duplicate, title="Another"),
        headers=other_headers
    )
    assert response.status_code == 409

    article = (await client.get("/api/articles/hello-mango")).json()["data"]
    assert article["title"] == "Hello Mango"
    assert article["content"]["blocks"][0]["data"]["text"] == "Original"


async def test_update_replaces_blocks(client, author_headers, make_content, database):
    content = make_content(
        {"type": "paragraph", "data": {"text": "One"}},
        {"type": "paragraph", "data": {"text": "Two"}},
    )
    created = (await client.post("/api/articles", json=article_payload(content), headers=author_headers)).json()["data"]

    new_content = make_content({"type": "quote", "data": {"text": "Only", "caption": "", "alignment": "left"}})
    response = await client.put(
        "/api/articles",
        json=article_payload(new_content, id=created["id"], title="Hello Again", published=False),
        headers=author_headers
    )
    assert response.status_code == 200
    updated = response.json()["data"]
    assert updated["title"] == "Hello Again"
    assert updated["published"] is False
    assert [b["type"] for b in updated["blocks"]] == ["quote"]

    async with database.session_factory() as session:
        count = (await session.execute(
            select(func.count(ArticleBlock.id)).where(ArticleBlock.article_id == created["id"])
        )).scalar()
    assert count == 1, "旧块应被整体替换"


async def test_update_permissions(client, author_headers, other_headers, make_content):
    content = make_content({"type": "paragraph", "data": {"text": "Mine"}})
    created = (await client.post("/api/articles", json=article_payload(content), headers=author_headers)).json()["data"]

    response = await client.put("/api/articles", json=article_payload(content, id=created["id"]), headers=other_headers)
    assert response.status_code == 403

    response = await client.put("/api/articles", json=article_payload(content, id=99999), headers=author_headers)
    assert response.status_code == 404


async def test_drafts_hidden_from_others(client, author_headers, other_headers, make_content):
    content = make_content({"type": "paragraph", "data": {"text": "Secret"}})
    await client.post("/api/articles", json=article_payload(content, published=False), headers=author_headers)

    assert (await client.get("/api/articles/hello-mango")).status_code == 404
    assert (await client.get("/api/articles/hello-mango", headers=other_headers)).status_code == 404
    assert (await client.get("/api/articles/hello-mango", headers=author_headers)).status_code == 200

    listing = (await client.get("/api/articles")).json()["data"]
    assert listing["articles"] == []


async def test_list_pagination(client, author, author_headers, make_content):
    for i in range(3):
        content = make_content({"type": "paragraph", "data": {"text": f"Body {i}"}})
        await client.post(
            "/api/articles",
            json=article_payload(content, title=f"Post {i}", slug=f"post-{i}"),
            headers=author_headers
        )

    first = (await client.get("/api/articles", params={"page": 0, "limit": 2})).json()["data"]
    assert len(first["articles"]) == 2
    assert first["nextPage"] == 1

    second = (await client.get("/api/articles", params={"page": 1, "limit": 2})).json()["data"]
    assert len(second["articles"]) == 1
    assert second["nextPage"] is None

    slugs = {a["slug"] for a in first["articles"] + second["articles"]}
    assert slugs == {"post-0", "post-1", "post-2"}

    previews = {a["slug"]: a["preview"] for a in first["articles"] + second["articles"]}
    assert previews == {"post-0": "Body 0", "post-1": "Body 1", "post-2": "Body 2"}

    by_author = (await client.get("/api/articles", params={"authorId": author.id})).json()["data"]
    assert len(by_author["articles"]) == 3


async def test_invalid_query_is_400(client):
    response = await client.get("/api/articles", params={"page": -1})
    assert response.status_code == 400


async def test_render_endpoint(client, author_headers, make_content):
    content = make_content(
        {"type": "paragraph", "data": {"text": "Hi <strong>there</strong>"}},
        {"type": "video", "data": {"url": "https://youtu.be/dQw4w9WgXcQ?t=5"}},
        {"type": "bogus-type", "data": {}},
    )
    await client.post("/api/articles", json=article_payload(content), headers=author_headers)

    response = await client.get("/api/articles/hello-mango/render")
    assert response.status_code == 200
    data = response.json()["data"]
    assert [n["kind"] for n in data["nodes"]] == ["paragraph", "video_embed", "unknown"]
    assert data["nodes"][1]["attrs"]["videoId"] == "dQw4w9WgXcQ"
    assert "<strong>there</strong>" in data["html"]


async def test_missing_article_is_404(client):
    assert (await client.get("/api/articles/nope")).status_code == 404
    assert (await client.get("/api/articles/nope/render")).status_code == 404


async def test_empty_block_array_is_valid_content(client, author_headers):
    """空块数组是合法正文"""
    response = await client.post("/api/articles", json=article_payload([]), headers=author_headers)
    assert response.status_code == 200
    created = response.json()["data"]
    assert created["content"] == []
    assert created["blocks"] == []

    rendered = (await client.get("/api/articles/hello-mango/render")).json()["data"]
    assert rendered["nodes"] == []


async def test_deeply_nested_content_string_rejected(client, author_headers):
    response = await client.post("/api/articles", json=article_payload("[" * 100000), headers=author_headers)
    assert response.status_code == 400


async def test_storage_failure_on_list_returns_500(client, monkeypatch):
    async def broken(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("connection lost"))

    monkeypatch.setattr(ArticleService, "list_published", broken)
    response = await client.get("/api/articles")

    assert response.status_code == 500
    detail = response.json()["detail"]
    assert detail["error"] == "Failed to fetch articles"
    assert "connection lost" in detail["details"]


async def test_storage_failure_on_like_returns_500(client, author_headers, make_content, monkeypatch):
    content = make_content({"type": "paragraph", "data": {"text": "Like me"}})
    await client.post("/api/articles", json=article_payload(content), headers=author_headers)

    async def broken(*args, **kwargs):
        raise OperationalError("INSERT", {}, Exception("disk full"))

    monkeypatch.setattr(LikeService, "toggle", broken)
    response = await client.post("/api/articles/hello-mango/like", headers=author_headers)

    assert response.status_code == 500
    assert response.json()["detail"]["error"] == "Failed to toggle like"
    assert "disk full" in response.json()["detail"]["details"]
