import logging
from fastapi import APIRouter, Depends

from vocabventure.api.dependencies import get_engine
from vocabventure.api.schemas.engine_schemas import BadgeAwardParams, BadgeUpgradeParams
from vocabventure.services.engine_service import ReadingEngine

logger = logging.getLogger(__name__)
router = APIRouter()

@router.post("/award")
async def award_badge(params: BadgeAwardParams, engine: ReadingEngine = Depends(get_engine)):
    """授予徽章（只升不降）"""
    return await engine.award_badge(params.user_id, params.story_id, params.tier, params.category)

@router.post("/upgrade")
async def upgrade_badge(params: BadgeUpgradeParams, engine: ReadingEngine = Depends(get_engine)):
    """覆盖故事完成徽章"""
    return await engine.upgrade_badge(params.user_id, params.story_id, params.new_tier)

@router.get("/{user_id}")
async def get_ordered_badges(user_id: int, engine: ReadingEngine = Depends(get_engine)):
    """用户徽章，最早获得的在前"""
    return await engine.get_ordered_badges(user_id)

@router.get("/{user_id}/stats")
async def get_badge_stats(user_id: int, engine: ReadingEngine = Depends(get_engine)):
    """各等级徽章数量"""
    return await engine.get_badge_stats(user_id)

@router.get("/{user_id}/stories/{story_id}")
async def get_story_badges(user_id: int, story_id: int, engine: ReadingEngine = Depends(get_engine)):
    """某个故事的徽章"""
    return await engine.get_story_badges(user_id, story_id)
