"""
认证工具函数
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any

import bcrypt
from jose import JWTError, jwt
from fastapi import Depends, Header, HTTPException, status
from mango_articles.core.config import settings

GUEST_SUBJECT = "guest"


@dataclass
class CurrentUser:
    """当前请求的身份"""
    id: Optional[int]
    username: str
    is_guest: bool = False

    def to_dict(self) -> dict:
        return {"id": self.id, "username": self.username, "isGuest": self.is_guest}


def hash_password(password: str) -> str:
    """生成密码哈希"""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=10)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """校验密码"""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    创建JWT访问token

    Args:
        data: 要编码到token中的数据
        expires_delta: token过期时间增量，默认使用配置中的时间

    Returns:
        str: JWT token字符串
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return encoded_jwt


def create_user_token(user_id: int, username: str) -> str:
    return create_access_token({"sub": str(user_id), "username": username, "guest": False})


def create_guest_token() -> str:
    return create_access_token({"sub": GUEST_SUBJECT, "username": GUEST_SUBJECT, "guest": True})


def verify_token(token: str, raise_on_error: bool = True) -> Optional[Dict[str, Any]]:
    """
    验证JWT token

    Args:
        token: JWT token字符串
        raise_on_error: 验证失败时是否抛出异常，False时返回None

    Returns:
        Dict: token中的payload数据，验证失败时返回None（如果raise_on_error=False）

    Raises:
        HTTPException: token无效或过期（如果raise_on_error=True）
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        return payload
    except JWTError:
        if raise_on_error:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token无效或已过期",
                headers={"WWW-Authenticate": "Bearer"},
            )
        return None


def _user_from_payload(payload: Dict[str, Any]) -> Optional[CurrentUser]:
    subject = payload.get("sub")
    if subject is None:
        return None
    if payload.get("guest"):
        return CurrentUser(id=None, username=payload.get("username") or GUEST_SUBJECT, is_guest=True)
    try:
        user_id = int(subject)
    except (TypeError, ValueError):
        return None
    return CurrentUser(id=user_id, username=payload.get("username") or "", is_guest=False)


def _extract_bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.strip():
        return None
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="认证格式错误，应为: Bearer {token}",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return parts[1]


async def get_optional_user(authorization: Optional[str] = Header(None)) -> Optional[CurrentUser]:
    """
    从请求头解析当前身份，未登录或token无效时返回None（用于只读接口）
    """
    try:
        token = _extract_bearer(authorization)
    except HTTPException:
        return None
    if token is None:
        return None
    payload = verify_token(token, raise_on_error=False)
    return _user_from_payload(payload) if payload else None


async def get_current_user(authorization: Optional[str] = Header(None)) -> CurrentUser:
    """
    从请求头获取当前身份（通过JWT token）

    Raises:
        HTTPException: 未提供认证信息、格式错误或token无效（401）
    """
    token = _extract_bearer(authorization)
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="未提供认证信息",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = verify_token(token, raise_on_error=True)
    user = _user_from_payload(payload)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token中未找到用户ID",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_current_author(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    """
    写操作要求非访客身份

    Raises:
        HTTPException: 访客身份（403）
    """
    if current_user.is_guest:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="访客用户无权执行此操作",
        )
    return current_user
