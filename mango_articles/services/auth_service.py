"""
认证服务
"""
import logging
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from mango_articles.models.user import User
from mango_articles.utils.auth import hash_password, verify_password

logger = logging.getLogger(__name__)


class RegistrationError(Exception):
    """注册信息冲突"""


class AuthService:
    """认证服务类"""

    @staticmethod
    def normalize_email(email: str) -> str:
        return email.strip().lower()

    @classmethod
    async def get_by_email(cls, db: AsyncSession, email: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.email == cls.normalize_email(email)))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_username(db: AsyncSession, username: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    @classmethod
    async def register(cls, db: AsyncSession, username: str, email: str, full_name: str, password: str) -> User:
        """
        注册新用户

        Args:
            db: 数据库会话
            username: 用户名
            email: 邮箱
            full_name: 显示名称
            password: 明文密码

        Returns:
            User: 新用户

        Raises:
            RegistrationError: 邮箱或用户名已被占用
        """
        if await cls.get_by_email(db, email):
            raise RegistrationError("邮箱已被使用")
        if await cls.get_by_username(db, username):
            raise RegistrationError("用户名已被占用")

        user = User(
            username=username,
            email=cls.normalize_email(email),
            full_name=full_name,
            password_hash=hash_password(password),
            is_active=True
        )
        db.add(user)
        try:
            await db.commit()
        except IntegrityError as e:
            # 并发注册同一邮箱或用户名
            await db.rollback()
            raise RegistrationError("邮箱或用户名已被占用") from e
        await db.refresh(user)

        logger.info("Registered user %s (id=%s)", user.username, user.id)
        return user

    @classmethod
    async def authenticate(cls, db: AsyncSession, email: str, password: str) -> Optional[User]:
        """
        校验邮箱和密码

        Returns:
            User: 校验通过的用户，失败返回None
        """
        user = await cls.get_by_email(db, email)
        if not user or not user.is_active:
            return None
        if not verify_password(password, user.password_hash):
            return None
        return user
