import logging
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session

from vocabventure.config.settings import settings
from vocabventure.models.badge import BadgeTier
from vocabventure.repositories.quiz_repository import QuizResultRepository

logger = logging.getLogger(__name__)


def derive_badge_type(score: int, total_questions: int) -> str:
    """
    按单次作答分数计算徽章等级

    - 全对 -> gold（0题的退化情况不算全对）
    - 3~4 分 -> silver（与总题数无关，沿用5题测验的设计）
    - 其余 -> bronze
    """
    if total_questions > 0 and score == total_questions:
        return BadgeTier.GOLD.value
    if 3 <= score <= 4:
        return BadgeTier.SILVER.value
    return BadgeTier.BRONZE.value


def passes_upgrade_threshold(score: int) -> bool:
    """是否达到升级故事徽章的及格线（满分5分中至少4分）"""
    return score >= settings.QUIZ_PASS_SCORE


class QuizService:
    """测验记分服务"""

    def __init__(self, db: Session):
        self.db = db
        self.quiz_repo = QuizResultRepository(db)

    def record_attempt(self, user_id: int, story_id: int, quiz_number: int,
                       score: int, total_questions: int) -> str:
        """
        追加一条作答记录

        Returns:
            str: 本次作答的徽章等级
        """
        badge_type = derive_badge_type(score, total_questions)
        self.quiz_repo.create(
            user_id=user_id,
            story_id=story_id,
            quiz_number=quiz_number,
            score=score,
            total_questions=total_questions,
            badge_type=badge_type,
        )
        logger.info(f"保存测验结果: 用户{user_id}, 故事{story_id}, 测验{quiz_number}, "
                    f"得分{score}/{total_questions}, 徽章{badge_type}")
        return badge_type

    def get_best_attempt(self, user_id: int, story_id: int, quiz_number: int) -> Optional[Dict[str, Any]]:
        """最高分及对应的总题数和徽章，没有作答时返回 None"""
        best = self.quiz_repo.get_best_attempt(user_id, story_id, quiz_number)
        if not best:
            return None
        return {
            "bestScore": best.score,
            "totalQuestions": best.total_questions,
            "badgeType": best.badge_type,
        }

    def get_results(self, user_id: int, story_id: Optional[int] = None) -> List[Dict[str, Any]]:
        return [result.to_dict() for result in self.quiz_repo.get_results(user_id, story_id)]
