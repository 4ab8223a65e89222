from typing import List, Optional
from sqlalchemy.orm import Session

from vocabventure.models.quiz_result import QuizResult
from vocabventure.repositories.base import BaseRepository


class QuizResultRepository(BaseRepository[QuizResult]):
    def __init__(self, db: Session):
        super().__init__(db, QuizResult)

    def get_best_attempt(self, user_id: int, story_id: int, quiz_number: int) -> Optional[QuizResult]:
        """获取最高分的一次作答，同分取最早的一次"""
        return self.db.query(QuizResult).filter(
            QuizResult.user_id == user_id,
            QuizResult.story_id == story_id,
            QuizResult.quiz_number == quiz_number
        ).order_by(QuizResult.score.desc(), QuizResult.id.asc()).first()

    def get_results(self, user_id: int, story_id: Optional[int] = None) -> List[QuizResult]:
        """获取作答记录，最新的在前"""
        query = self.db.query(QuizResult).filter(QuizResult.user_id == user_id)
        if story_id is not None:
            query = query.filter(QuizResult.story_id == story_id)
        return query.order_by(QuizResult.completed_at.desc(), QuizResult.id.desc()).all()
