"""
文章Schema模型
"""
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Any
from datetime import datetime


class ArticleSave(BaseModel):
    """
    创建/更新文章请求模型

    title、slug、content 在接口层做必填校验，缺失时返回400
    """
    id: Optional[int] = Field(None, description="文章ID，提供时为更新")
    title: Optional[str] = Field(None, max_length=255, description="文章标题")
    slug: Optional[str] = Field(None, max_length=255, description="URL标识")
    content: Optional[Any] = Field(None, description="块结构文档 {time, version, blocks}")
    excerpt: Optional[str] = Field(None, description="摘要")
    featuredImage: Optional[str] = Field(None, description="封面图地址")
    published: bool = Field(False, description="是否发布")


class AuthorInfo(BaseModel):
    """作者信息"""
    id: int
    username: str
    fullName: Optional[str] = None
    avatarUrl: Optional[str] = None


class BlockResponse(BaseModel):
    """块记录"""
    id: int
    type: str
    content: Any = None
    order: int


class ArticleResponse(BaseModel):
    """文章详情响应模型"""
    id: int
    slug: str
    title: str
    excerpt: Optional[str] = None
    content: Any = None
    featuredImage: Optional[str] = None
    published: bool
    authorId: int
    author: Optional[AuthorInfo] = None
    blocks: List[BlockResponse] = []
    likeCount: int = 0
    likedByMe: bool = False
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


class ArticleListItem(BaseModel):
    """文章列表项"""
    id: int
    slug: str
    title: str
    excerpt: Optional[str] = None
    preview: str = ""
    featuredImage: Optional[str] = None
    authorId: int
    author: Optional[AuthorInfo] = None
    likeCount: int = 0
    createdAt: Optional[datetime] = None


class ArticleListResponse(BaseModel):
    """文章列表响应模型，nextPage 为空表示没有更多"""
    articles: List[ArticleListItem]
    nextPage: Optional[int] = None


class RenderResponse(BaseModel):
    """渲染结果"""
    slug: str
    nodes: List[dict]
    html: str


class LikeResponse(BaseModel):
    """点赞切换结果"""
    liked: bool
    likeCount: int


class CommentCreate(BaseModel):
    """发表评论请求模型"""
    content: str = Field(..., min_length=1, description="评论内容")

    @field_validator("content", mode="before")
    @classmethod
    def strip_content(cls, v):
        # 先去掉首尾空白再做长度校验
        return v.strip() if isinstance(v, str) else v


class CommentResponse(BaseModel):
    """评论响应模型"""
    id: int
    articleId: int
    author: Optional[AuthorInfo] = None
    content: str
    createdAt: Optional[datetime] = None


class AuthorProfile(BaseModel):
    """作者主页"""
    id: int
    username: str
    fullName: Optional[str] = None
    avatarUrl: Optional[str] = None
    bio: Optional[str] = None
    articleCount: int = 0
    createdAt: Optional[datetime] = None
