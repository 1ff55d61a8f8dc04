from .user import User
from .article import Article
from .article_block import ArticleBlock
from .like import Like
from .comment import Comment

__all__ = [
    "User",
    "Article",
    "ArticleBlock",
    "Like",
    "Comment"
]
