from sqlalchemy import Column, Integer, Boolean, DateTime, ForeignKey, UniqueConstraint
from .base import BaseModel
from vocabventure.utils.helpers import format_timestamp


"""
阅读进度模型
每个 (用户, 故事, 片段) 一行。completed 是片段完成标记；
last_viewed_segment 虽然存在每一行上，语义上是 (用户, 故事) 级别的续读游标，
取同一故事所有行的最大值作为续读位置。
"""

class Progress(BaseModel):
    __tablename__ = "progress"
    __table_args__ = (
        UniqueConstraint("user_id", "story_id", "segment_id"),
    )

    user_id = Column(Integer, ForeignKey("users.id"))
    story_id = Column(Integer)
    segment_id = Column(Integer)
    completed = Column(Boolean, default=False)
    completed_at = Column(DateTime)
    last_viewed_segment = Column(Integer, default=1, server_default="1")

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "story_id": self.story_id,
            "segment_id": self.segment_id,
            "completed": bool(self.completed),
            "completed_at": format_timestamp(self.completed_at),
            "last_viewed_segment": self.last_viewed_segment
        }
