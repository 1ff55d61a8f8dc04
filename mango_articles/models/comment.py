"""
评论模型
"""
from sqlalchemy import Column, BigInteger, Text, TIMESTAMP, ForeignKey, func
from mango_articles.db.database import Base, IdType


class Comment(Base):
    __tablename__ = "comments"

    id = Column(IdType, primary_key=True, autoincrement=True)
    article_id = Column(BigInteger, ForeignKey("articles.id", ondelete="CASCADE"), nullable=False, index=True)
    author_id = Column(BigInteger, ForeignKey("users.id"), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
