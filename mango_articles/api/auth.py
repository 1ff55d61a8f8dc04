"""
认证API
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError

from mango_articles.api.articles import storage_error
from mango_articles.db.database import get_db
from mango_articles.models.user import User
from mango_articles.schemas.auth import RegisterRequest, LoginRequest, TokenResponse, UserInfo
from mango_articles.schemas.common import ResponseModel
from mango_articles.services.auth_service import AuthService, RegistrationError
from mango_articles.utils.auth import (
    CurrentUser, create_guest_token, create_user_token, get_current_user
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["认证"])


def user_info(user: User) -> UserInfo:
    return UserInfo(
        id=user.id,
        username=user.username,
        email=user.email,
        fullName=user.full_name,
        avatarUrl=user.avatar_url
    )


@router.post("/register", response_model=ResponseModel, status_code=status.HTTP_201_CREATED)
async def register(
    register_data: RegisterRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    注册新用户
    """
    try:
        user = await AuthService.register(
            db,
            username=register_data.username,
            email=register_data.email,
            full_name=register_data.fullName,
            password=register_data.password
        )
    except RegistrationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except SQLAlchemyError as e:
        raise storage_error("Failed to create user", e)

    return ResponseModel(
        code=201,
        message="注册成功",
        data=user_info(user)
    )


@router.post("/login", response_model=ResponseModel)
async def login(
    login_data: LoginRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    邮箱密码登录，返回Bearer token
    """
    try:
        user = await AuthService.authenticate(db, login_data.email, login_data.password)
    except SQLAlchemyError as e:
        raise storage_error("Failed to authenticate", e)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="邮箱或密码错误",
            headers={"WWW-Authenticate": "Bearer"}
        )

    logger.info("User %s logged in", user.username)
    return ResponseModel(
        code=200,
        message="登录成功",
        data=TokenResponse(
            token=create_user_token(user.id, user.username),
            user=user_info(user).model_dump()
        )
    )


@router.post("/guest", response_model=ResponseModel)
async def guest_login():
    """
    访客登录：只能浏览，不能执行写操作
    """
    guest = CurrentUser(id=None, username="guest", is_guest=True)
    return ResponseModel(
        code=200,
        message="访客登录成功",
        data=TokenResponse(
            token=create_guest_token(),
            user=guest.to_dict()
        )
    )


@router.get("/me", response_model=ResponseModel)
async def get_me(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """
    获取当前身份
    """
    if current_user.is_guest:
        return ResponseModel(
            code=200,
            message="获取成功",
            data=UserInfo(username=current_user.username, isGuest=True)
        )

    try:
        result = await db.get(User, current_user.id)
    except SQLAlchemyError as e:
        raise storage_error("Failed to fetch user", e)

    if not result:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="用户不存在")

    return ResponseModel(
        code=200,
        message="获取成功",
        data=user_info(result)
    )
