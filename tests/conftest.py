"""
测试公共夹具：内存SQLite + ASGI客户端
"""
import httpx
import pytest

from main import create_app
from mango_articles.db.database import Database
from mango_articles.services.auth_service import AuthService
from mango_articles.services.upload_service import ImageUploader
from mango_articles.utils.auth import create_guest_token, create_user_token


@pytest.fixture
async def database():
    """每个测试一个独立的内存数据库"""
    db = Database("sqlite+aiosqlite://")
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
async def session(database):
    async with database.session_factory() as s:
        yield s


@pytest.fixture
def uploader():
    return ImageUploader(mock=True)


@pytest.fixture
async def client(database, uploader):
    # ASGITransport 不执行 lifespan，这里直接注入存储句柄和上传客户端
    app = create_app()
    app.state.db = database
    app.state.uploader = uploader
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c


@pytest.fixture
async def author(session):
    return await AuthService.register(
        session, username="mango", email="mango@example.com", full_name="Mango Author", password="secret123"
    )


@pytest.fixture
async def other_author(session):
    return await AuthService.register(
        session, username="papaya", email="papaya@example.com", full_name="Papaya Writer", password="secret123"
    )


@pytest.fixture
def author_headers(author):
    return {"Authorization": f"Bearer {create_user_token(author.id, author.username)}"}


@pytest.fixture
def other_headers(other_author):
    return {"Authorization": f"Bearer {create_user_token(other_author.id, other_author.username)}"}


@pytest.fixture
def guest_headers():
    return {"Authorization": f"Bearer {create_guest_token()}"}


@pytest.fixture
def make_content():
    """组装块结构文档"""
    def _make(*blocks):
        return {"time": 1700000000000, "version": "2.26.5", "blocks": list(blocks)}
    return _make
