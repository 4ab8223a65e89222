from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
import logging

from vocabventure.config.settings import settings
from vocabventure.utils.exceptions import MigrationError, SchemaError
from vocabventure.utils.migration import LegacyMigrator
from vocabventure.utils.schema import ensure_schema

logger = logging.getLogger(__name__)


def _enable_transactional_ddl(engine: Engine):
    """
    让 pysqlite 的 BEGIN 由 SQLAlchemy 发出，
    这样 CREATE / DROP / ALTER 也处于同一个事务中，迁移可以整体回滚
    """
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def create_store_engine(database_url: str) -> Engine:
    """创建本地SQLite引擎"""
    kwargs = {
        "echo": settings.DEBUG,  # 在DEBUG模式下输出SQL语句
        "connect_args": {"check_same_thread": False},
    }
    if ":memory:" in database_url or database_url in ("sqlite://", "sqlite+pysqlite://"):
        kwargs["poolclass"] = StaticPool

    engine = create_engine(database_url, **kwargs)
    _enable_transactional_ddl(engine)
    return engine


class LocalStore:
    """
    本地嵌入式数据库

    open() 建表并在检测到旧结构时迁移；close() 释放连接。
    迁移失败不会中断启动，而是以旧结构兼容模式继续运行（legacy_mode=True）。
    """

    def __init__(self, database_url: Optional[str] = None):
        self.database_url = database_url or settings.DATABASE_URL
        self.engine: Optional[Engine] = None
        self.SessionLocal: Optional[sessionmaker] = None
        self.legacy_mode = False

    def open(self, migrate: Optional[bool] = None) -> "LocalStore":
        """初始化数据库：建表、补列、迁移。SchemaError 直接向上抛出"""
        if migrate is None:
            migrate = settings.RUN_MIGRATION_ON_STARTUP
        self._ensure_directory()
        self.engine = create_store_engine(self.database_url)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

        try:
            ensure_schema(self.engine)
        except SchemaError:
            self.close()
            raise

        if migrate:
            migrator = LegacyMigrator(self.engine, backup=settings.MIGRATION_BACKUP)
            try:
                migrator.migrate()
                self.legacy_mode = False
            except MigrationError as e:
                logger.error(f"迁移失败，以旧结构兼容模式继续运行: {e}")
                self.legacy_mode = True

        logger.info(f"本地数据库已就绪: {self.database_url}")
        return self

    def close(self):
        """释放数据库连接"""
        if self.engine is not None:
            self.engine.dispose()
            logger.info("数据库连接已关闭")
        self.engine = None
        self.SessionLocal = None

    @contextmanager
    def session(self) -> Iterator[Session]:
        """获取数据库会话，出错时回滚"""
        if self.SessionLocal is None:
            raise RuntimeError("LocalStore 尚未初始化，请先调用 open()")
        db = self.SessionLocal()
        try:
            yield db
        except Exception as e:
            logger.error(f"数据库会话错误: {e}")
            db.rollback()
            raise
        finally:
            db.close()

    def check_connection(self) -> bool:
        """检查数据库连接是否正常"""
        if self.engine is None:
            return False
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"数据库连接检查失败: {e}")
            return False

    def _ensure_directory(self):
        prefix = "sqlite:///"
        if not self.database_url.startswith(prefix):
            return
        path = self.database_url[len(prefix):]
        if path and path != ":memory:":
            Path(path).parent.mkdir(parents=True, exist_ok=True)
