import logging
from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from vocabventure.config.settings import settings
from vocabventure.models.badge import BadgeCategory, BadgeTier
from vocabventure.repositories.badge_repository import BadgeRepository
from vocabventure.repositories.progress_repository import ProgressRepository
from vocabventure.services.badge_service import BadgeService
from vocabventure.utils.helpers import format_timestamp, percentage, utc_now

logger = logging.getLogger(__name__)


class ProgressService:
    """阅读进度服务"""

    def __init__(self, db: Session):
        self.db = db
        self.progress_repo = ProgressRepository(db)
        self.badge_repo = BadgeRepository(db)

    def mark_segment_viewed(self, user_id: int, story_id: int, segment_id: int):
        """标记片段已读，重复调用是幂等的"""
        self.progress_repo.upsert_completed(user_id, story_id, segment_id, utc_now())
        logger.debug(f"片段已读: 用户{user_id}, 故事{story_id}, 片段{segment_id}")

    def save_last_viewed(self, user_id: int, story_id: int, segment_id: int):
        """保存续读位置"""
        self.progress_repo.upsert_last_viewed(user_id, story_id, segment_id)
        logger.debug(f"续读位置: 用户{user_id}, 故事{story_id}, 片段{segment_id}")

    def get_resume_point(self, user_id: int, story_id: int) -> int:
        """续读位置，没有任何记录时返回 0"""
        return self.progress_repo.get_max_last_viewed(user_id, story_id) or 0

    def get_completion_status(self, user_id: int, story_id: int, total_segments: int) -> Dict[str, Any]:
        """
        单个故事的完成情况

        界面据此决定"继续阅读" / "去测验1" / "去测验2"。
        """
        completed_segments, last_accessed = self.progress_repo.get_story_summary(user_id, story_id)
        categories = {category for badge_story, category in self._quiz_badge_keys(user_id)
                      if badge_story == story_id}

        return {
            "completedSegments": completed_segments,
            "totalSegments": total_segments,
            "storyCompleted": completed_segments >= total_segments,
            "quiz1Completed": BadgeCategory.QUIZ_1.value in categories,
            "quiz2Completed": BadgeCategory.QUIZ_2.value in categories,
            "lastAccessed": format_timestamp(last_accessed),
        }

    def get_bulk_completion_status(self, user_id: int,
                                   total_segments: Optional[int] = None) -> Dict[int, Dict[str, Any]]:
        """
        所有故事的完成情况，固定两次分组查询，与故事数量无关

        Args:
            user_id: 用户ID
            total_segments: 每个故事的片段数；提供时才计算 storyCompleted

        Returns:
            Dict: 以故事ID为键的完成情况
        """
        progress_rows = self.progress_repo.get_summary_by_story(user_id)
        badge_rows = self._quiz_badge_keys(user_id)

        statuses: Dict[int, Dict[str, Any]] = {}

        def status_for(story_id: int) -> Dict[str, Any]:
            if story_id not in statuses:
                statuses[story_id] = {
                    "completedSegments": 0,
                    "lastAccessed": None,
                    "quiz1Completed": False,
                    "quiz2Completed": False,
                }
            return statuses[story_id]

        for story_id, completed_segments, last_accessed in progress_rows:
            status = status_for(story_id)
            status["completedSegments"] = completed_segments
            status["lastAccessed"] = format_timestamp(last_accessed)

        for story_id, category in badge_rows:
            status = status_for(story_id)
            if category == BadgeCategory.QUIZ_1.value:
                status["quiz1Completed"] = True
            elif category == BadgeCategory.QUIZ_2.value:
                status["quiz2Completed"] = True

        if total_segments is not None:
            for status in statuses.values():
                status["totalSegments"] = total_segments
                status["storyCompleted"] = status["completedSegments"] >= total_segments

        return statuses

    def _quiz_badge_keys(self, user_id: int) -> List[Tuple[int, str]]:
        """
        测验徽章的 (故事ID, 类别)

        迁移失败时 user_badges 仍是旧结构，没有类别列；此时按没有测验徽章处理，
        阅读进度照常返回。
        """
        try:
            return self.badge_repo.get_quiz_badge_keys(user_id)
        except SQLAlchemyError as e:
            logger.warning(f"读取测验徽章失败，按未完成测验处理: {e}")
            self.db.rollback()
            return []

    def get_progress(self, user_id: int, story_id: int) -> List[Dict[str, Any]]:
        """某个故事的所有片段记录"""
        return [row.to_dict() for row in self.progress_repo.get_story_rows(user_id, story_id)]

    def get_all_progress(self, user_id: int) -> List[Dict[str, Any]]:
        """按故事统计的已完成片段数"""
        return [
            {
                "story_id": story_id,
                "completed_segments": completed_segments,
                "total_segments": settings.DEFAULT_TOTAL_SEGMENTS,
                "last_activity": format_timestamp(last_activity),
            }
            for story_id, completed_segments, last_activity in self.progress_repo.get_summary_by_story(user_id)
        ]

    def get_overall_progress(self, user_id: int) -> Dict[str, int]:
        """全部故事的阅读进度百分比"""
        completed = self.progress_repo.count_completed(user_id)
        total = settings.OVERALL_TOTAL_SEGMENTS
        return {
            "completed": completed,
            "total": total,
            "percentage": percentage(completed, total),
        }

    def complete_story(self, user_id: int, story_id: int, total_segments: int) -> str:
        """
        读完整个故事：标记全部片段已读并授予 bronze 故事徽章

        Returns:
            str: 徽章授予结果（inserted / upgraded / unchanged）
        """
        completed_at = utc_now()
        for segment_id in range(1, total_segments + 1):
            self.progress_repo.upsert_completed(user_id, story_id, segment_id, completed_at)

        change = BadgeService(self.db).award(
            user_id, story_id, BadgeTier.BRONZE.value, BadgeCategory.STORY_COMPLETION.value
        )
        logger.info(f"用户{user_id} 读完故事{story_id}，共{total_segments}个片段")
        return change
