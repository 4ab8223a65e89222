from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import List

class Settings(BaseSettings):
    """应用配置"""

    # 应用配置
    APP_NAME: str = "VocabVenture 阅读进度引擎"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # 数据库配置（本地嵌入式SQLite文件）
    DATABASE_URL: str = "sqlite:///./database/vocabventure.db"
    RUN_MIGRATION_ON_STARTUP: bool = True
    MIGRATION_BACKUP: bool = True

    # 日志配置
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
    LOG_DIR: str = "logs"
    LOG_FILE: str = "vocabventure.log"

    # 测验与徽章配置
    QUIZ_PASS_SCORE: int = 4            # 升级徽章所需的最低分（满分5）
    DEFAULT_TOTAL_SEGMENTS: int = 14    # 单个故事的默认片段数
    OVERALL_TOTAL_SEGMENTS: int = 42    # 全部故事的片段总数，用于进度百分比

    # 面向用户的失败提示（不暴露数据库错误）
    FRIENDLY_RETRY_MESSAGE: str = "Something went wrong. Please try again."

    CORS_ORIGINS: List[str] = [
        "capacitor://localhost",
        "http://localhost",
        "http://localhost:3000",
    ]

    model_config = ConfigDict(
        env_file=".env",
        case_sensitive=True,
    )

# 创建全局配置实例
settings = Settings()
