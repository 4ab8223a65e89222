from fastapi import Request

from vocabventure.services.engine_service import ReadingEngine


def get_engine(request: Request) -> ReadingEngine:
    """获取应用生命周期内创建的阅读引擎"""
    return request.app.state.engine
