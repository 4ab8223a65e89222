"""
表结构管理

ensure_schema() 每次启动都可以安全调用：四张表不存在时创建，已存在时跳过；
随后自愈 progress.last_viewed_segment 这一后加的列。
"""

import logging

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from vocabventure.models.base import Base
from vocabventure.utils.exceptions import SchemaError

logger = logging.getLogger(__name__)

CURRENT_TABLES = ("users", "progress", "quiz_results", "user_badges")


def _load_models():
    """导入所有模型，确保它们注册到 Base.metadata"""
    from vocabventure.models.user import User
    from vocabventure.models.progress import Progress
    from vocabventure.models.quiz_result import QuizResult
    from vocabventure.models.badge import UserBadge
    return User, Progress, QuizResult, UserBadge


def get_column_names(engine: Engine, table_name: str) -> set:
    """获取表的列名集合，表不存在时返回空集合"""
    inspector = inspect(engine)
    if not inspector.has_table(table_name):
        return set()
    return {column["name"] for column in inspector.get_columns(table_name)}


def ensure_schema(engine: Engine) -> None:
    """
    创建缺失的表并自愈已知的列缺失

    Raises:
        SchemaError: 非"已存在"类的DDL失败
    """
    _load_models()

    for table in Base.metadata.sorted_tables:
        try:
            table.create(bind=engine, checkfirst=True)
        except OperationalError as e:
            if "already exists" in str(e).lower():
                logger.warning(f"表 {table.name} 已存在，跳过创建: {e}")
                continue
            logger.error(f"创建表 {table.name} 失败: {e}")
            raise SchemaError(f"无法创建表 {table.name}") from e
        except SQLAlchemyError as e:
            logger.error(f"创建表 {table.name} 失败: {e}")
            raise SchemaError(f"无法创建表 {table.name}") from e

    logger.info("数据库表检查完成")
    heal_progress_columns(engine)


def heal_progress_columns(engine: Engine) -> bool:
    """
    为旧版 progress 表补上 last_viewed_segment 列

    失败只记录日志，不影响启动。返回是否执行了补列。
    """
    try:
        columns = get_column_names(engine, "progress")
        if not columns or "last_viewed_segment" in columns:
            return False

        with engine.begin() as conn:
            conn.execute(text(
                "ALTER TABLE progress ADD COLUMN last_viewed_segment INTEGER DEFAULT 1"
            ))
        logger.info("已为 progress 表添加 last_viewed_segment 列")
        return True
    except SQLAlchemyError as e:
        logger.warning(f"添加 last_viewed_segment 列失败，忽略: {e}")
        return False
