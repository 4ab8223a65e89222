import logging
from fastapi import APIRouter, Depends, HTTPException, status

from vocabventure.api.dependencies import get_engine
from vocabventure.api.schemas.engine_schemas import Credentials
from vocabventure.services.engine_service import ReadingEngine

logger = logging.getLogger(__name__)
router = APIRouter()

@router.post("/register")
async def register(credentials: Credentials, engine: ReadingEngine = Depends(get_engine)):
    """
    用户注册，重复注册返回 success=false
    """
    return await engine.register(credentials.name, credentials.birthdate)

@router.post("/login")
async def login(credentials: Credentials, engine: ReadingEngine = Depends(get_engine)):
    """
    用户登录
    """
    return await engine.login(credentials.name, credentials.birthdate)

@router.get("/users/{user_id}")
async def get_user(user_id: int, engine: ReadingEngine = Depends(get_engine)):
    """
    获取用户信息
    """
    user = await engine.get_user(user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="用户不存在"
        )
    return user
