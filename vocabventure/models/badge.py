from enum import Enum

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from .base import BaseModel
from vocabventure.utils.helpers import utc_now, format_timestamp


class BadgeTier(str, Enum):
    """徽章等级，按 bronze < silver < gold 排序"""
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"


class BadgeCategory(str, Enum):
    """徽章类别：读完故事、通过测验1、通过测验2"""
    STORY_COMPLETION = "story-completion"
    QUIZ_1 = "quiz-1"
    QUIZ_2 = "quiz-2"

    @classmethod
    def for_quiz(cls, quiz_number: int) -> "BadgeCategory":
        return cls.QUIZ_1 if quiz_number == 1 else cls.QUIZ_2


TIER_RANK = {"bronze": 1, "silver": 2, "gold": 3}

BADGE_LABELS = {
    BadgeCategory.STORY_COMPLETION.value: "Story Complete",
    BadgeCategory.QUIZ_1.value: "Quiz 1",
    BadgeCategory.QUIZ_2.value: "Quiz 2",
}


def tier_rank(tier) -> int:
    """未知等级按0处理"""
    if isinstance(tier, BadgeTier):
        tier = tier.value
    return TIER_RANK.get(tier, 0)


"""
用户徽章模型
每个 (用户, 故事, 类别) 最多一行；earned_at 记录首次获得时间，升级时不变。
"""

class UserBadge(BaseModel):
    __tablename__ = "user_badges"
    __table_args__ = (
        UniqueConstraint("user_id", "story_id", "badge_category"),
    )

    user_id = Column(Integer, ForeignKey("users.id"))
    story_id = Column(Integer)
    badge_type = Column(String)
    badge_category = Column(String)
    earned_at = Column(DateTime, default=utc_now)

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "story_id": self.story_id,
            "badge_type": self.badge_type,
            "badge_category": self.badge_category,
            "badge_label": BADGE_LABELS.get(self.badge_category, self.badge_category),
            "earned_at": format_timestamp(self.earned_at)
        }
