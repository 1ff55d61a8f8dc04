"""
认证相关Schema
"""
from pydantic import BaseModel, Field, field_validator
from typing import Optional

# bcrypt 只接受不超过72字节的密码
PASSWORD_MAX_BYTES = 72


class RegisterRequest(BaseModel):
    """注册请求"""
    username: str = Field(..., min_length=3, max_length=64, description="用户名")
    email: str = Field(..., min_length=3, max_length=255, description="邮箱")
    fullName: str = Field(..., min_length=1, max_length=255, description="显示名称")
    password: str = Field(..., min_length=6, description="密码")

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        if len(v.encode("utf-8")) > PASSWORD_MAX_BYTES:
            raise ValueError(f"密码不能超过{PASSWORD_MAX_BYTES}字节")
        return v


class LoginRequest(BaseModel):
    """登录请求"""
    email: str
    password: str


class TokenResponse(BaseModel):
    """登录结果"""
    token: str
    user: dict


class UserInfo(BaseModel):
    """用户信息"""
    id: Optional[int] = None
    username: str
    email: Optional[str] = None
    fullName: Optional[str] = None
    avatarUrl: Optional[str] = None
    isGuest: bool = False
