"""
点赞模型
"""
from sqlalchemy import Column, BigInteger, TIMESTAMP, ForeignKey, UniqueConstraint, func
from mango_articles.db.database import Base, IdType


class Like(Base):
    __tablename__ = "likes"
    __table_args__ = (
        UniqueConstraint("user_id", "article_id", name="uq_likes_user_article"),
    )

    id = Column(IdType, primary_key=True, autoincrement=True)
    user_id = Column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    article_id = Column(BigInteger, ForeignKey("articles.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
