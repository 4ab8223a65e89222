from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from vocabventure.models.progress import Progress
from vocabventure.repositories.base import BaseRepository

PROGRESS_KEY = ["user_id", "story_id", "segment_id"]


class ProgressRepository(BaseRepository[Progress]):
    def __init__(self, db: Session):
        super().__init__(db, Progress)

    def upsert_completed(self, user_id: int, story_id: int, segment_id: int, completed_at: datetime):
        """标记片段完成；已存在的行只更新完成字段，不动续读游标"""
        stmt = sqlite_insert(Progress).values(
            user_id=user_id,
            story_id=story_id,
            segment_id=segment_id,
            completed=True,
            completed_at=completed_at,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=PROGRESS_KEY,
            set_={
                "completed": True,
                "completed_at": stmt.excluded.completed_at,
            },
        )
        self.db.execute(stmt)
        self.db.commit()

    def upsert_last_viewed(self, user_id: int, story_id: int, segment_id: int):
        """写入续读游标；已存在的行只更新 last_viewed_segment，不动完成标记"""
        stmt = sqlite_insert(Progress).values(
            user_id=user_id,
            story_id=story_id,
            segment_id=segment_id,
            completed=False,
            last_viewed_segment=segment_id,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=PROGRESS_KEY,
            set_={"last_viewed_segment": stmt.excluded.last_viewed_segment},
        )
        self.db.execute(stmt)
        self.db.commit()

    def get_max_last_viewed(self, user_id: int, story_id: int) -> Optional[int]:
        """同一故事所有行中最大的 last_viewed_segment"""
        return self.db.query(func.max(Progress.last_viewed_segment)).filter(
            Progress.user_id == user_id,
            Progress.story_id == story_id
        ).scalar()

    def get_story_rows(self, user_id: int, story_id: int) -> List[Progress]:
        """获取某个故事的所有片段记录"""
        return self.db.query(Progress).filter(
            Progress.user_id == user_id,
            Progress.story_id == story_id
        ).order_by(Progress.segment_id).all()

    def get_story_summary(self, user_id: int, story_id: int) -> Tuple[int, Optional[datetime]]:
        """已完成片段数和最近完成时间"""
        count, last_accessed = self.db.query(
            func.count(Progress.id),
            func.max(Progress.completed_at)
        ).filter(
            Progress.user_id == user_id,
            Progress.story_id == story_id,
            Progress.completed == True
        ).one()
        return count or 0, last_accessed

    def get_summary_by_story(self, user_id: int) -> List[Tuple[int, int, Optional[datetime]]]:
        """按故事分组的已完成片段数和最近完成时间（单次查询）"""
        return self.db.query(
            Progress.story_id,
            func.count(Progress.id),
            func.max(Progress.completed_at)
        ).filter(
            Progress.user_id == user_id,
            Progress.completed == True
        ).group_by(Progress.story_id).order_by(Progress.story_id).all()

    def count_completed(self, user_id: int) -> int:
        """用户所有已完成片段数"""
        return self.db.query(func.count(Progress.id)).filter(
            Progress.user_id == user_id,
            Progress.completed == True
        ).scalar() or 0
