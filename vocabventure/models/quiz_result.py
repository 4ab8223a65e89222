from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from .base import BaseModel
from vocabventure.utils.helpers import utc_now, format_timestamp


"""
测验结果模型
只追加的作答日志：每次完成测验写入一行，badge_type 是作答时按分数计算的徽章快照。
最高分通过聚合查询得到，不单独存储。
"""

class QuizResult(BaseModel):
    __tablename__ = "quiz_results"

    user_id = Column(Integer, ForeignKey("users.id"))
    story_id = Column(Integer)
    quiz_number = Column(Integer)
    score = Column(Integer)
    total_questions = Column(Integer)
    badge_type = Column(String)
    completed_at = Column(DateTime, default=utc_now)

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "story_id": self.story_id,
            "quiz_number": self.quiz_number,
            "score": self.score,
            "total_questions": self.total_questions,
            "badge_type": self.badge_type,
            "completed_at": format_timestamp(self.completed_at)
        }
