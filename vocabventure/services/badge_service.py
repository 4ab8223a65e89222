#!/usr/bin/env python3
"""
徽章账本服务
每个 (用户, 故事, 类别) 的徽章只升不降：bronze < silver < gold。
故事徽章的流转：读完故事 -> bronze，通过测验1 -> silver，通过测验2 -> gold。
"""

import logging
from typing import Any, Dict, List
from sqlalchemy.orm import Session

from vocabventure.models.badge import BadgeCategory, BadgeTier, tier_rank
from vocabventure.repositories.badge_repository import BadgeRepository

logger = logging.getLogger(__name__)

AWARD_INSERTED = "inserted"
AWARD_UPGRADED = "upgraded"
AWARD_UNCHANGED = "unchanged"


class BadgeService:
    def __init__(self, db: Session):
        self.db = db
        self.badge_repo = BadgeRepository(db)

    def award(self, user_id: int, story_id: int, tier: str, category: str) -> str:
        """
        授予徽章
        - 不存在则插入，earned_at 为当前时间
        - 已存在且新等级更高则只更新等级
        - 否则不做任何修改
        """
        existing = self.badge_repo.get_story_badge(user_id, story_id, category)

        if not existing:
            self.badge_repo.create(
                user_id=user_id,
                story_id=story_id,
                badge_type=tier,
                badge_category=category,
            )
            logger.info(f"授予徽章: 用户{user_id}, 故事{story_id}, {category} -> {tier}")
            return AWARD_INSERTED

        if tier_rank(tier) > tier_rank(existing.badge_type):
            old_tier = existing.badge_type
            self.badge_repo.update_tier(existing, tier)
            logger.info(f"徽章升级: 用户{user_id}, 故事{story_id}, {category}: {old_tier} -> {tier}")
            return AWARD_UPGRADED

        logger.debug(f"徽章未变化: 用户{user_id}, 故事{story_id}, {category} 已是 {existing.badge_type}")
        return AWARD_UNCHANGED

    def upgrade_story_completion(self, user_id: int, story_id: int, new_tier: str):
        """
        测验通过后覆盖故事完成徽章

        删除后重新插入，不做等级比较；调用方只应传入按及格线算出的等级。
        出现降级时只记录警告，不拦截。
        """
        category = BadgeCategory.STORY_COMPLETION.value
        existing = self.badge_repo.get_story_badge(user_id, story_id, category)
        if existing and tier_rank(new_tier) < tier_rank(existing.badge_type):
            logger.warning(f"故事徽章被降级: 用户{user_id}, 故事{story_id}: "
                           f"{existing.badge_type} -> {new_tier}")

        self.badge_repo.replace_story_badge(user_id, story_id, category, new_tier)
        logger.info(f"故事徽章更新: 用户{user_id}, 故事{story_id} -> {new_tier}")

    def get_ordered_badges(self, user_id: int) -> List[Dict[str, Any]]:
        """按获得时间升序（最早的在前）"""
        return [badge.to_dict() for badge in self.badge_repo.get_user_badges(user_id, oldest_first=True)]

    def get_all_badges(self, user_id: int) -> List[Dict[str, Any]]:
        """按获得时间降序"""
        return [badge.to_dict() for badge in self.badge_repo.get_user_badges(user_id, oldest_first=False)]

    def get_story_badges(self, user_id: int, story_id: int) -> List[Dict[str, Any]]:
        return [badge.to_dict() for badge in self.badge_repo.get_story_badges(user_id, story_id)]

    def has_badge(self, user_id: int, story_id: int, category: str) -> bool:
        return self.badge_repo.get_story_badge(user_id, story_id, category) is not None

    def get_stats(self, user_id: int) -> Dict[str, int]:
        """各等级数量和总数"""
        counts = self.badge_repo.count_by_tier(user_id)
        return {
            BadgeTier.GOLD.value: counts.get(BadgeTier.GOLD.value, 0),
            BadgeTier.SILVER.value: counts.get(BadgeTier.SILVER.value, 0),
            BadgeTier.BRONZE.value: counts.get(BadgeTier.BRONZE.value, 0),
            "total": sum(counts.values()),
        }
