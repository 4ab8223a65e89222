import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query

from vocabventure.api.dependencies import get_engine
from vocabventure.api.schemas.engine_schemas import CompleteStoryParams, SegmentParams
from vocabventure.config.settings import settings
from vocabventure.services.engine_service import ReadingEngine

logger = logging.getLogger(__name__)
router = APIRouter()

@router.post("/viewed")
async def mark_viewed(params: SegmentParams, engine: ReadingEngine = Depends(get_engine)):
    """标记片段已读"""
    return await engine.mark_viewed(params.user_id, params.story_id, params.segment_id)

@router.post("/last-viewed")
async def save_last_viewed(params: SegmentParams, engine: ReadingEngine = Depends(get_engine)):
    """保存续读位置"""
    return await engine.save_last_viewed(params.user_id, params.story_id, params.segment_id)

@router.post("/complete-story")
async def complete_story(params: CompleteStoryParams, engine: ReadingEngine = Depends(get_engine)):
    """读完整个故事"""
    return await engine.complete_story(params.user_id, params.story_id, params.total_segments)

@router.get("/{user_id}")
async def get_bulk_completion_status(
    user_id: int,
    total_segments: Optional[int] = Query(None, description="每个故事的片段数", ge=0),
    engine: ReadingEngine = Depends(get_engine)
):
    """所有故事的完成情况（书架页面）"""
    return await engine.get_bulk_completion_status(user_id, total_segments)

@router.get("/{user_id}/overall")
async def get_overall_progress(user_id: int, engine: ReadingEngine = Depends(get_engine)):
    """全部故事的阅读进度百分比"""
    return await engine.get_overall_progress(user_id)

@router.get("/{user_id}/stories/{story_id}")
async def get_completion_status(
    user_id: int,
    story_id: int,
    total_segments: int = Query(settings.DEFAULT_TOTAL_SEGMENTS, description="故事片段数", ge=0),
    engine: ReadingEngine = Depends(get_engine)
):
    """单个故事的完成情况"""
    return await engine.get_completion_status(user_id, story_id, total_segments)

@router.get("/{user_id}/stories/{story_id}/last-viewed")
async def get_last_viewed(user_id: int, story_id: int, engine: ReadingEngine = Depends(get_engine)):
    """续读位置"""
    return {"segmentId": await engine.get_last_viewed(user_id, story_id)}
