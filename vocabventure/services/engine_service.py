#!/usr/bin/env python3
"""
阅读引擎门面
界面层的唯一入口：按方法名 + JSON参数调用，返回可JSON序列化的结果。
所有读写都通过这里进入进度、测验、徽章服务；数据库错误在这里被记录并转换为
失败结果或空值，原始错误信息不会返回给界面。
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from vocabventure.api.schemas.engine_schemas import (
    BadgeAwardParams, BadgeLookupParams, BadgeUpgradeParams, BulkCompletionParams,
    CompleteStoryParams, CompletionStatusParams, Credentials, QuizAttemptParams,
    QuizLookupParams, QuizResultsParams, SegmentParams, StoryParams, UserParams,
)
from vocabventure.config.settings import settings
from vocabventure.models.badge import BadgeCategory, BadgeTier
from vocabventure.services.auth_service import AuthService
from vocabventure.services.badge_service import BadgeService
from vocabventure.services.progress_service import ProgressService
from vocabventure.services.quiz_service import QuizService, passes_upgrade_threshold
from vocabventure.utils.database import LocalStore
from vocabventure.utils.exceptions import NotFoundError, VocabVentureError

logger = logging.getLogger(__name__)

ACK = {"success": True}


def failure_result() -> Dict[str, Any]:
    """面向界面的通用失败结果"""
    return {"success": False, "message": settings.FRIENDLY_RETRY_MESSAGE}


class ReadingEngine:
    def __init__(self, store: LocalStore):
        self.store = store
        self._methods: Dict[str, Tuple[Type[BaseModel], Callable]] = {
            "auth.login": (Credentials, self.login),
            "auth.register": (Credentials, self.register),
            "user.get": (UserParams, self.get_user),
            "progress.markViewed": (SegmentParams, self.mark_viewed),
            "progress.saveLastViewed": (SegmentParams, self.save_last_viewed),
            "progress.getLastViewed": (StoryParams, self.get_last_viewed),
            "progress.getCompletionStatus": (CompletionStatusParams, self.get_completion_status),
            "progress.getBulkCompletionStatus": (BulkCompletionParams, self.get_bulk_completion_status),
            "progress.get": (StoryParams, self.get_progress),
            "progress.getAll": (UserParams, self.get_all_progress),
            "progress.getOverall": (UserParams, self.get_overall_progress),
            "progress.completeStory": (CompleteStoryParams, self.complete_story),
            "quiz.save": (QuizAttemptParams, self.save_quiz),
            "quiz.finish": (QuizAttemptParams, self.finish_quiz),
            "quiz.getResults": (QuizResultsParams, self.get_quiz_results),
            "quiz.getBestScore": (QuizLookupParams, self.get_best_score),
            "badge.award": (BadgeAwardParams, self.award_badge),
            "badge.upgrade": (BadgeUpgradeParams, self.upgrade_badge),
            "badge.getAllOrdered": (UserParams, self.get_ordered_badges),
            "badge.getAll": (UserParams, self.get_all_badges),
            "badge.getStory": (StoryParams, self.get_story_badges),
            "badge.has": (BadgeLookupParams, self.has_badge),
            "badge.getStats": (UserParams, self.get_badge_stats),
        }
        logger.info("阅读引擎初始化完成")

    @property
    def methods(self) -> List[str]:
        return sorted(self._methods)

    async def dispatch(self, method: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        按方法名调用

        Raises:
            NotFoundError: 方法不存在
            pydantic.ValidationError: 参数不合法
        """
        entry = self._methods.get(method)
        if entry is None:
            raise NotFoundError(f"未知方法: {method}")

        params_model, handler = entry
        validated = params_model.model_validate(params or {})
        return await handler(**validated.model_dump())

    def _run(self, label: str, operation: Callable[[Session], Any], default: Any) -> Any:
        """在一个会话中执行操作，失败时记录日志并返回默认值"""
        try:
            with self.store.session() as db:
                return operation(db)
        except (SQLAlchemyError, VocabVentureError) as e:
            logger.error(f"[{label}] 执行失败: {e}")
            return default

    # ---------------- 用户 ----------------

    async def login(self, name: str, birthdate: str) -> Dict[str, Any]:
        return self._run("auth.login", lambda db: AuthService(db).login(name, birthdate), failure_result())

    async def register(self, name: str, birthdate: str) -> Dict[str, Any]:
        return self._run("auth.register", lambda db: AuthService(db).register(name, birthdate), failure_result())

    async def get_user(self, user_id: int) -> Optional[Dict[str, Any]]:
        return self._run("user.get", lambda db: AuthService(db).get_user(user_id), None)

    # ---------------- 阅读进度 ----------------

    async def mark_viewed(self, user_id: int, story_id: int, segment_id: int) -> Dict[str, Any]:
        def operation(db):
            ProgressService(db).mark_segment_viewed(user_id, story_id, segment_id)
            return dict(ACK)
        return self._run("progress.markViewed", operation, failure_result())

    async def save_last_viewed(self, user_id: int, story_id: int, segment_id: int) -> Dict[str, Any]:
        def operation(db):
            ProgressService(db).save_last_viewed(user_id, story_id, segment_id)
            return dict(ACK)
        return self._run("progress.saveLastViewed", operation, failure_result())

    async def get_last_viewed(self, user_id: int, story_id: int) -> int:
        return self._run("progress.getLastViewed",
                         lambda db: ProgressService(db).get_resume_point(user_id, story_id), 0)

    async def get_completion_status(self, user_id: int, story_id: int, total_segments: int) -> Dict[str, Any]:
        default = {
            "completedSegments": 0,
            "totalSegments": total_segments,
            "storyCompleted": False,
            "quiz1Completed": False,
            "quiz2Completed": False,
            "lastAccessed": None,
        }
        return self._run(
            "progress.getCompletionStatus",
            lambda db: ProgressService(db).get_completion_status(user_id, story_id, total_segments),
            default,
        )

    async def get_bulk_completion_status(self, user_id: int,
                                         total_segments: Optional[int] = None) -> Dict[int, Dict[str, Any]]:
        return self._run(
            "progress.getBulkCompletionStatus",
            lambda db: ProgressService(db).get_bulk_completion_status(user_id, total_segments),
            {},
        )

    async def get_progress(self, user_id: int, story_id: int) -> List[Dict[str, Any]]:
        return self._run("progress.get", lambda db: ProgressService(db).get_progress(user_id, story_id), [])

    async def get_all_progress(self, user_id: int) -> List[Dict[str, Any]]:
        return self._run("progress.getAll", lambda db: ProgressService(db).get_all_progress(user_id), [])

    async def get_overall_progress(self, user_id: int) -> Dict[str, int]:
        default = {"completed": 0, "total": settings.OVERALL_TOTAL_SEGMENTS, "percentage": 0}
        return self._run("progress.getOverall", lambda db: ProgressService(db).get_overall_progress(user_id), default)

    async def complete_story(self, user_id: int, story_id: int, total_segments: int) -> Dict[str, Any]:
        def operation(db):
            change = ProgressService(db).complete_story(user_id, story_id, total_segments)
            return {"success": True, "change": change}
        return self._run("progress.completeStory", operation, failure_result())

    # ---------------- 测验 ----------------

    async def save_quiz(self, user_id: int, story_id: int, quiz_number: int,
                        score: int, total_questions: int) -> Any:
        """返回本次作答的徽章等级，失败时返回失败结果"""
        return self._run(
            "quiz.save",
            lambda db: QuizService(db).record_attempt(user_id, story_id, quiz_number, score, total_questions),
            failure_result(),
        )

    async def finish_quiz(self, user_id: int, story_id: int, quiz_number: int,
                          score: int, total_questions: int) -> Dict[str, Any]:
        """
        完成一次测验
        1. 追加作答记录
        2. 按本次等级授予 quiz-1 / quiz-2 徽章（只升不降）
        3. 达到及格线时覆盖故事徽章：测验1 -> silver，测验2 -> gold
        """
        def operation(db):
            badge_type = QuizService(db).record_attempt(user_id, story_id, quiz_number, score, total_questions)
            badge_service = BadgeService(db)
            badge_service.award(user_id, story_id, badge_type, BadgeCategory.for_quiz(quiz_number).value)

            passed = passes_upgrade_threshold(score)
            story_badge = None
            if passed:
                story_badge = BadgeTier.SILVER.value if quiz_number == 1 else BadgeTier.GOLD.value
                badge_service.upgrade_story_completion(user_id, story_id, story_badge)

            return {
                "success": True,
                "badgeType": badge_type,
                "passed": passed,
                "storyBadge": story_badge,
            }
        return self._run("quiz.finish", operation, failure_result())

    async def get_quiz_results(self, user_id: int, story_id: Optional[int] = None) -> List[Dict[str, Any]]:
        return self._run("quiz.getResults", lambda db: QuizService(db).get_results(user_id, story_id), [])

    async def get_best_score(self, user_id: int, story_id: int, quiz_number: int) -> Optional[Dict[str, Any]]:
        return self._run("quiz.getBestScore",
                         lambda db: QuizService(db).get_best_attempt(user_id, story_id, quiz_number), None)

    # ---------------- 徽章 ----------------

    async def award_badge(self, user_id: int, story_id: int, tier: str,
                          category: str = BadgeCategory.STORY_COMPLETION.value) -> Dict[str, Any]:
        tier = BadgeTier(tier).value
        category = BadgeCategory(category).value

        def operation(db):
            change = BadgeService(db).award(user_id, story_id, tier, category)
            return {"success": True, "change": change}
        return self._run("badge.award", operation, failure_result())

    async def upgrade_badge(self, user_id: int, story_id: int, new_tier: str) -> Dict[str, Any]:
        new_tier = BadgeTier(new_tier).value

        def operation(db):
            BadgeService(db).upgrade_story_completion(user_id, story_id, new_tier)
            return dict(ACK)
        return self._run("badge.upgrade", operation, failure_result())

    async def get_ordered_badges(self, user_id: int) -> List[Dict[str, Any]]:
        return self._run("badge.getAllOrdered", lambda db: BadgeService(db).get_ordered_badges(user_id), [])

    async def get_all_badges(self, user_id: int) -> List[Dict[str, Any]]:
        return self._run("badge.getAll", lambda db: BadgeService(db).get_all_badges(user_id), [])

    async def get_story_badges(self, user_id: int, story_id: int) -> List[Dict[str, Any]]:
        return self._run("badge.getStory", lambda db: BadgeService(db).get_story_badges(user_id, story_id), [])

    async def has_badge(self, user_id: int, story_id: int, category: str) -> bool:
        category = BadgeCategory(category).value
        return self._run("badge.has", lambda db: BadgeService(db).has_badge(user_id, story_id, category), False)

    async def get_badge_stats(self, user_id: int) -> Dict[str, int]:
        default = {"gold": 0, "silver": 0, "bronze": 0, "total": 0}
        return self._run("badge.getStats", lambda db: BadgeService(db).get_stats(user_id), default)
