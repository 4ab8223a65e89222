"""
旧表结构迁移

早期版本的 quiz_results 没有 quiz_number / badge_type，user_badges 只有一个
自由文本的 badge_id。迁移在单个事务中把两张表重写为当前结构：任何一步失败
都整体回滚，旧表保持原样。
"""

import logging
import re
import shutil
import time
from pathlib import Path
from typing import Dict, NamedTuple, Optional

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine

from vocabventure.models.badge import BadgeCategory, BadgeTier
from vocabventure.services.quiz_service import derive_badge_type
from vocabventure.utils.exceptions import MigrationError
from vocabventure.utils.schema import get_column_names

logger = logging.getLogger(__name__)

LEGACY_STORY_PATTERN = re.compile(r"story-?(\d+)", re.IGNORECASE)

QUIZ_RESULTS_DDL = """
    CREATE TABLE quiz_results_new (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER,
        story_id INTEGER,
        quiz_number INTEGER,
        score INTEGER,
        total_questions INTEGER,
        badge_type VARCHAR,
        completed_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (user_id) REFERENCES users(id)
    )
"""

USER_BADGES_DDL = """
    CREATE TABLE user_badges_new (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER,
        story_id INTEGER,
        badge_type VARCHAR,
        badge_category VARCHAR,
        earned_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (user_id) REFERENCES users(id),
        UNIQUE (user_id, story_id, badge_category)
    )
"""


class LegacyBadge(NamedTuple):
    """从旧 badge_id 解析出的徽章信息"""
    story_id: int
    badge_type: str
    badge_category: str


def parse_legacy_badge_id(badge_id: Optional[str]) -> LegacyBadge:
    """
    解析旧版自由文本徽章ID，例如 "story-2-gold-quiz1"

    - 故事ID: "story" 后面的数字，默认 1
    - 等级: 包含 gold / silver / bronze 之一，默认 gold
    - 类别: quiz1 -> quiz-1, quiz2 -> quiz-2，其余（含 complete）-> story-completion
    """
    badge_id = badge_id or ""

    story_id = 1
    match = LEGACY_STORY_PATTERN.search(badge_id)
    if match:
        story_id = int(match.group(1))

    badge_type = BadgeTier.GOLD.value
    for tier in (BadgeTier.GOLD, BadgeTier.SILVER, BadgeTier.BRONZE):
        if tier.value in badge_id:
            badge_type = tier.value
            break

    if "quiz1" in badge_id:
        badge_category = BadgeCategory.QUIZ_1.value
    elif "quiz2" in badge_id:
        badge_category = BadgeCategory.QUIZ_2.value
    else:
        badge_category = BadgeCategory.STORY_COMPLETION.value

    return LegacyBadge(story_id, badge_type, badge_category)


class LegacyMigrator:
    """检测并迁移旧版 quiz_results / user_badges 表结构"""

    QUIZ_COLUMNS = ("quiz_number", "badge_type")
    BADGE_COLUMNS = ("story_id", "badge_category")

    def __init__(self, engine: Engine, backup: bool = False):
        self.engine = engine
        self.backup = backup

    def inspect_shape(self) -> Dict[str, bool]:
        """返回每张表是否需要迁移；表不存在时不需要"""
        quiz_columns = get_column_names(self.engine, "quiz_results")
        badge_columns = get_column_names(self.engine, "user_badges")

        shape = {
            "quiz_results": bool(quiz_columns) and any(
                column not in quiz_columns for column in self.QUIZ_COLUMNS
            ),
            "user_badges": bool(badge_columns) and any(
                column not in badge_columns for column in self.BADGE_COLUMNS
            ),
        }
        logger.info(f"旧表结构检查结果: {shape}")
        return shape

    def needs_migration(self) -> bool:
        return any(self.inspect_shape().values())

    def migrate(self) -> bool:
        """
        执行迁移

        Returns:
            bool: 是否执行了迁移（已是新结构时返回 False）

        Raises:
            MigrationError: 迁移失败，事务已回滚
        """
        shape = self.inspect_shape()
        if not any(shape.values()):
            logger.info("数据库已是最新结构，无需迁移")
            return False

        if self.backup:
            self._backup_database_file()

        logger.info("开始迁移旧表结构...")
        try:
            with self.engine.begin() as conn:
                if shape["quiz_results"]:
                    self._rewrite_quiz_results(conn)
                if shape["user_badges"]:
                    self._rewrite_user_badges(conn)
        except Exception as e:
            logger.error(f"迁移失败，已回滚全部修改: {e}")
            raise MigrationError("旧表结构迁移失败") from e

        logger.info("旧表结构迁移完成")
        return True

    def _rewrite_quiz_results(self, conn: Connection):
        rows = conn.execute(text("SELECT * FROM quiz_results")).mappings().all()
        logger.info(f"迁移 quiz_results: 共 {len(rows)} 条记录")

        conn.execute(text("DROP TABLE IF EXISTS quiz_results_new"))
        conn.execute(text(QUIZ_RESULTS_DDL))

        payload = []
        for row in rows:
            score = row["score"] if row["score"] is not None else 0
            total = row["total_questions"] if row["total_questions"] is not None else 0
            payload.append({
                "id": row["id"],
                "user_id": row["user_id"],
                "story_id": row["story_id"],
                "quiz_number": row.get("quiz_number") or 1,
                "score": row["score"],
                "total_questions": row["total_questions"],
                "badge_type": derive_badge_type(score, total),
                "completed_at": row.get("completed_at"),
            })

        if payload:
            conn.execute(text("""
                INSERT INTO quiz_results_new
                (id, user_id, story_id, quiz_number, score, total_questions, badge_type, completed_at)
                VALUES (:id, :user_id, :story_id, :quiz_number, :score, :total_questions, :badge_type, :completed_at)
            """), payload)

        conn.execute(text("DROP TABLE quiz_results"))
        conn.execute(text("ALTER TABLE quiz_results_new RENAME TO quiz_results"))
        logger.info("quiz_results 表迁移完成")

    def _rewrite_user_badges(self, conn: Connection):
        rows = conn.execute(text("SELECT * FROM user_badges")).mappings().all()
        logger.info(f"迁移 user_badges: 共 {len(rows)} 条记录")

        conn.execute(text("DROP TABLE IF EXISTS user_badges_new"))
        conn.execute(text(USER_BADGES_DDL))

        payload = []
        for row in rows:
            parsed = parse_legacy_badge_id(row.get("badge_id"))
            payload.append({
                "id": row["id"],
                "user_id": row["user_id"],
                "story_id": row.get("story_id") or parsed.story_id,
                "badge_type": row.get("badge_type") or parsed.badge_type,
                "badge_category": row.get("badge_category") or parsed.badge_category,
                "earned_at": row.get("earned_at"),
            })

        if payload:
            # 解析后 (用户, 故事, 类别) 重复的记录只保留第一条
            conn.execute(text("""
                INSERT OR IGNORE INTO user_badges_new
                (id, user_id, story_id, badge_type, badge_category, earned_at)
                VALUES (:id, :user_id, :story_id, :badge_type, :badge_category, :earned_at)
            """), payload)

        conn.execute(text("DROP TABLE user_badges"))
        conn.execute(text("ALTER TABLE user_badges_new RENAME TO user_badges"))
        logger.info("user_badges 表迁移完成")

    def _backup_database_file(self):
        database = self.engine.url.database
        if not database or database == ":memory:":
            return

        db_path = Path(database)
        if not db_path.exists():
            return

        backup_path = db_path.with_name(f"{db_path.stem}_backup_{int(time.time() * 1000)}{db_path.suffix}")
        try:
            shutil.copyfile(db_path, backup_path)
        except OSError as e:
            logger.error(f"迁移前备份数据库失败: {e}")
            raise MigrationError("迁移前备份数据库失败") from e
        logger.info(f"迁移前已备份数据库: {backup_path}")
