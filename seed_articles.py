"""
填充示例用户和文章

用块编辑器组装正文，保证示例数据和编辑器保存的格式一致。已存在的用户和slug会跳过。
"""
import asyncio

from mango_articles.content.editor import BlockEditor
from mango_articles.core.config import settings
from mango_articles.db.database import Database
from mango_articles.services.article_service import ArticleService, SlugConflictError
from mango_articles.services.auth_service import AuthService

SAMPLE_USERS = [
    {
        "full_name": "John Doe",
        "username": "johndoe",
        "email": "john@example.com",
        "password": "password123",
        "bio": "Full-stack developer passionate about web applications."
    },
    {
        "full_name": "Jane Smith",
        "username": "janesmith",
        "email": "jane@example.com",
        "password": "password123",
        "bio": "UI/UX designer and front-end developer."
    },
]

SAMPLE_TITLES = [
    "Getting Started with Block Editors",
    "Writing Clear Technical Articles",
    "Designing for Readability",
    "A Short Guide to Embedding Video",
]

LOREM = (
    "Lorem ipsum dolor sit amet, consectetur adipiscing elit. Nulla facilisi. "
    "Maecenas vestibulum fringilla dui nec tincidunt."
)


def build_article(title: str, index: int) -> dict:
    """用编辑器组装一篇示例文章的保存请求体"""
    editor = BlockEditor(title=title)
    editor.edit_block_content(editor.blocks[0].id, {"text": f"<strong>{title}</strong>. {LOREM}"})

    header = editor.insert_block("header")
    editor.edit_block_content(header.id, {"text": f"This is a heading for {editor.slug_from_title()}", "level": 2})

    image = editor.insert_block("image")
    editor.edit_block_content(image.id, {
        "src": f"https://picsum.photos/800/400?random={index}",
        "alt": "Random image from Lorem Picsum"
    })

    quote = editor.insert_block("quote")
    editor.edit_block_content(quote.id, {
        "text": "The best way to predict the future is to create it.",
        "caption": "Abraham Lincoln",
        "alignment": "left"
    })

    items = editor.insert_block("list")
    editor.edit_block_content(items.id, {
        "style": "unordered",
        "items": [
            "First important point about this topic",
            "Another critical aspect to consider",
            "Final crucial element to remember"
        ]
    })

    if index % 2 == 0:
        video = editor.insert_block("video")
        editor.edit_block_content(video.id, {"url": "https://www.youtube.com/watch?v=dQw4w9WgXcQ"})

    editor.insert_block("separator")
    closing = editor.insert_block("paragraph")
    editor.edit_block_content(closing.id, {"text": LOREM})

    editor.set_featured_image(f"https://picsum.photos/1200/600?random={index}")
    return editor.build_save_payload(publish=True)


async def seed(database: Database):
    async with database.session_factory() as session:
        authors = []
        for user_data in SAMPLE_USERS:
            user = await AuthService.get_by_username(session, user_data["username"])
            if user:
                print(f"⚪ 用户已存在: {user.username}")
            else:
                user = await AuthService.register(
                    session,
                    username=user_data["username"],
                    email=user_data["email"],
                    full_name=user_data["full_name"],
                    password=user_data["password"]
                )
                user.bio = user_data["bio"]
                await session.commit()
                print(f"✅ 创建用户: {user.username}")
            authors.append((user.id, user.username))

        for index, title in enumerate(SAMPLE_TITLES):
            payload = build_article(title, index)
            author_id, username = authors[index % len(authors)]
            try:
                await ArticleService.create(session, author_id, {
                    "title": payload["title"],
                    "slug": payload["slug"],
                    "content": payload["content"],
                    "excerpt": payload["excerpt"],
                    "featured_image": payload["featuredImage"],
                    "published": payload["published"]
                })
                print(f"✅ 创建文章: {payload['slug']} (作者 {username})")
            except SlugConflictError:
                print(f"⚪ 文章已存在: {payload['slug']}")


async def main():
    database = Database(settings.DATABASE_URL)
    try:
        await database.create_all()
        await seed(database)
        print("\n🎉 示例数据填充完成！")
    finally:
        await database.dispose()


if __name__ == "__main__":
    asyncio.run(main())
