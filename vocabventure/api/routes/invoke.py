import logging
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import ValidationError

from vocabventure.api.dependencies import get_engine
from vocabventure.api.schemas.engine_schemas import InvokeRequest, InvokeResponse
from vocabventure.services.engine_service import ReadingEngine
from vocabventure.utils.exceptions import NotFoundError

logger = logging.getLogger(__name__)
router = APIRouter()

@router.post("", response_model=InvokeResponse)
async def invoke(request: InvokeRequest, engine: ReadingEngine = Depends(get_engine)):
    """
    统一调用接口：{method, params} -> {result}
    桌面端和移动端通过不同的传输方式调用同一组方法
    """
    try:
        result = await engine.dispatch(request.method, request.params)
        return {"result": result}
    except NotFoundError as e:
        logger.warning(f"调用了不存在的方法: {request.method}")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    except ValidationError as e:
        logger.warning(f"参数校验失败 [{request.method}]: {e}")
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=e.errors(include_url=False, include_context=False)
        )

@router.get("/methods")
async def list_methods(engine: ReadingEngine = Depends(get_engine)):
    """列出可调用的方法名"""
    return {"methods": engine.methods}
