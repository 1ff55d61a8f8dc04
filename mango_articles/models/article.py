"""
文章模型
"""
from sqlalchemy import Column, BigInteger, String, Text, Boolean, TIMESTAMP, ForeignKey, func
from sqlalchemy.orm import relationship
from mango_articles.db.database import Base, IdType, JSONType


class Article(Base):
    __tablename__ = "articles"

    id = Column(IdType, primary_key=True, autoincrement=True)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    title = Column(String(255), nullable=False)
    excerpt = Column(Text, nullable=True)
    content = Column(JSONType, nullable=False)  # 块结构文档 {time, version, blocks}
    featured_image = Column(String, nullable=True)
    published = Column(Boolean, nullable=False, default=False)
    author_id = Column(BigInteger, ForeignKey("users.id"), nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # 关系
    blocks = relationship(
        "ArticleBlock",
        back_populates="article",
        cascade="all, delete-orphan",
        order_by="ArticleBlock.order",
    )
