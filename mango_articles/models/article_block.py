"""
文章内容块模型（content.blocks 的扁平化投影，用于排序元数据）
"""
from sqlalchemy import Column, BigInteger, String, Integer, ForeignKey
from sqlalchemy.orm import relationship
from mango_articles.db.database import Base, IdType, JSONType


class ArticleBlock(Base):
    __tablename__ = "article_blocks"

    id = Column(IdType, primary_key=True, autoincrement=True)
    article_id = Column(BigInteger, ForeignKey("articles.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(50), nullable=False)
    content = Column(JSONType, nullable=True)
    order = Column(Integer, nullable=False, default=0)

    # 关系
    article = relationship("Article", back_populates="blocks")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "content": self.content,
            "order": self.order,
        }
