"""
应用配置文件
"""
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """应用配置"""

    # 应用基本配置
    APP_NAME: str = "Mango Articles"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # 数据库配置
    DB_USERNAME: str = "postgres"
    DB_PASSWORD: str = "postgres"
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_NAME: str = "mango_articles"
    DB_URL: Optional[str] = None  # 完整连接串，设置后覆盖上面的分项配置
    DB_HEALTH_TIMEOUT_SECONDS: float = 5.0  # 健康检查中数据库探测的超时时间
    AUTO_CREATE_TABLES: bool = False  # 启动时自动建表（开发环境）

    # JWT配置
    SECRET_KEY: str = "your-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30 * 24 * 60  # 30天

    # CORS配置
    CORS_ORIGINS: list = ["*"]

    # ImageKit图片上传配置
    IMAGEKIT_PUBLIC_KEY: Optional[str] = None
    IMAGEKIT_PRIVATE_KEY: Optional[str] = None
    IMAGEKIT_URL_ENDPOINT: Optional[str] = None
    IMAGEKIT_UPLOAD_URL: str = "https://upload.imagekit.io/api/v1/files/upload"
    USE_MOCK_IMAGEKIT: bool = False  # 演示/测试环境返回占位图片

    # 上传限制
    UPLOAD_MAX_BYTES: int = 5 * 1024 * 1024  # 5MB
    UPLOAD_ALLOWED_TYPES: list = ["image/jpeg", "image/png", "image/gif", "image/webp"]
    UPLOAD_TIMEOUT_SECONDS: float = 30.0

    @property
    def DATABASE_URL(self) -> str:
        """获取数据库连接URL"""
        if self.DB_URL:
            return self.DB_URL
        return f"postgresql+asyncpg://{self.DB_USERNAME}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    class Config:
        case_sensitive = True
        env_file = ".env"


settings = Settings()
