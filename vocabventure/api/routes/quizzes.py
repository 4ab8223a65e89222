import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status

from vocabventure.api.dependencies import get_engine
from vocabventure.api.schemas.engine_schemas import QuizAttemptParams
from vocabventure.services.engine_service import ReadingEngine

logger = logging.getLogger(__name__)
router = APIRouter()

@router.post("/results")
async def save_quiz_result(params: QuizAttemptParams, engine: ReadingEngine = Depends(get_engine)):
    """保存一次作答，返回本次徽章等级；保存失败时直接返回失败结果"""
    result = await engine.save_quiz(
        params.user_id, params.story_id, params.quiz_number,
        params.score, params.total_questions
    )
    if isinstance(result, dict):
        return result
    return {"badgeType": result}

@router.post("/finish")
async def finish_quiz(params: QuizAttemptParams, engine: ReadingEngine = Depends(get_engine)):
    """完成测验：保存结果、授予测验徽章、达标时升级故事徽章"""
    return await engine.finish_quiz(
        params.user_id, params.story_id, params.quiz_number,
        params.score, params.total_questions
    )

@router.get("/{user_id}/results")
async def get_quiz_results(
    user_id: int,
    story_id: Optional[int] = Query(None, description="故事ID"),
    engine: ReadingEngine = Depends(get_engine)
):
    """作答记录，最新的在前"""
    return await engine.get_quiz_results(user_id, story_id)

@router.get("/{user_id}/stories/{story_id}/best")
async def get_best_score(
    user_id: int,
    story_id: int,
    quiz_number: int = Query(..., description="测验编号", ge=1, le=2),
    engine: ReadingEngine = Depends(get_engine)
):
    """最高分"""
    best = await engine.get_best_score(user_id, story_id, quiz_number)
    if best is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="没有作答记录"
        )
    return best
