#!/usr/bin/env python3
"""
用户认证服务
姓名 + 生日作为登录凭据；重复注册返回失败结果而不是抛异常。
"""

import logging
from typing import Any, Dict, Optional
from sqlalchemy.orm import Session

from vocabventure.repositories.user_repository import UserRepository
from vocabventure.utils.exceptions import ConstraintViolation

logger = logging.getLogger(__name__)

LOGIN_FAILED_MESSAGE = "Invalid name or birthdate. Please try again or register."
DUPLICATE_ACCOUNT_MESSAGE = "An account with this name and birthdate already exists. Please login instead."
REGISTERED_MESSAGE = "Account created successfully!"


class AuthService:
    def __init__(self, db: Session):
        self.db = db
        self.user_repo = UserRepository(db)

    def login(self, name: str, birthdate: str) -> Dict[str, Any]:
        """用户登录"""
        user = self.user_repo.get_by_credentials(name, birthdate)
        if not user:
            logger.info(f"登录失败，用户不存在: {name}")
            return {"success": False, "message": LOGIN_FAILED_MESSAGE}

        logger.info(f"用户登录成功: {user.id}")
        return {"success": True, "user": user.to_dict()}

    def register(self, name: str, birthdate: str) -> Dict[str, Any]:
        """
        用户注册
        - 先按凭据查重
        - 插入时的唯一约束冲突同样视为重复注册
        """
        if self.user_repo.get_by_credentials(name, birthdate):
            logger.info(f"重复注册: {name}")
            return {"success": False, "message": DUPLICATE_ACCOUNT_MESSAGE}

        try:
            user = self.user_repo.create(username=name, birthdate=birthdate)
        except ConstraintViolation as e:
            logger.warning(f"注册时唯一约束冲突: {e}")
            return {"success": False, "message": DUPLICATE_ACCOUNT_MESSAGE}

        logger.info(f"新用户创建成功: {user.id} - {user.username}")
        return {"success": True, "userId": user.id, "message": REGISTERED_MESSAGE}

    def get_user(self, user_id: int) -> Optional[Dict[str, Any]]:
        user = self.user_repo.get_by_id(user_id)
        return user.to_dict() if user else None
