from typing import Dict, List, Optional, Tuple
from sqlalchemy import func
from sqlalchemy.orm import Session

from vocabventure.models.badge import UserBadge, BadgeCategory
from vocabventure.repositories.base import BaseRepository

QUIZ_CATEGORIES = (BadgeCategory.QUIZ_1.value, BadgeCategory.QUIZ_2.value)


class BadgeRepository(BaseRepository[UserBadge]):
    def __init__(self, db: Session):
        super().__init__(db, UserBadge)

    def get_story_badge(self, user_id: int, story_id: int, category: str) -> Optional[UserBadge]:
        """获取 (用户, 故事, 类别) 对应的徽章"""
        return self.db.query(UserBadge).filter(
            UserBadge.user_id == user_id,
            UserBadge.story_id == story_id,
            UserBadge.badge_category == category
        ).first()

    def update_tier(self, badge: UserBadge, tier: str) -> UserBadge:
        """只修改等级，earned_at 保持不变"""
        badge.badge_type = tier
        self.db.commit()
        self.db.refresh(badge)
        return badge

    def replace_story_badge(self, user_id: int, story_id: int, category: str, tier: str) -> UserBadge:
        """删除后重新插入，在同一个事务中完成"""
        self.db.query(UserBadge).filter(
            UserBadge.user_id == user_id,
            UserBadge.story_id == story_id,
            UserBadge.badge_category == category
        ).delete(synchronize_session=False)
        badge = UserBadge(
            user_id=user_id,
            story_id=story_id,
            badge_type=tier,
            badge_category=category,
        )
        self.db.add(badge)
        self.db.commit()
        self.db.refresh(badge)
        return badge

    def get_user_badges(self, user_id: int, oldest_first: bool = True) -> List[UserBadge]:
        """获取用户全部徽章，按获得时间排序"""
        query = self.db.query(UserBadge).filter(UserBadge.user_id == user_id)
        if oldest_first:
            query = query.order_by(UserBadge.earned_at.asc(), UserBadge.id.asc())
        else:
            query = query.order_by(UserBadge.earned_at.desc(), UserBadge.id.desc())
        return query.all()

    def get_story_badges(self, user_id: int, story_id: int) -> List[UserBadge]:
        """获取某个故事的徽章"""
        return self.db.query(UserBadge).filter(
            UserBadge.user_id == user_id,
            UserBadge.story_id == story_id
        ).order_by(UserBadge.id).all()

    def count_by_tier(self, user_id: int) -> Dict[str, int]:
        """按等级统计徽章数量"""
        rows = self.db.query(UserBadge.badge_type, func.count(UserBadge.id)).filter(
            UserBadge.user_id == user_id
        ).group_by(UserBadge.badge_type).all()
        return {badge_type: count for badge_type, count in rows}

    def get_quiz_badge_keys(self, user_id: int) -> List[Tuple[int, str]]:
        """用户所有测验类徽章的 (故事ID, 类别)，单次查询"""
        return self.db.query(UserBadge.story_id, UserBadge.badge_category).filter(
            UserBadge.user_id == user_id,
            UserBadge.badge_category.in_(QUIZ_CATEGORIES)
        ).all()
