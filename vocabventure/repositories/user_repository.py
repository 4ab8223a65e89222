from typing import Optional
from sqlalchemy.orm import Session
from vocabventure.models.user import User
from vocabventure.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    def __init__(self, db: Session):
        super().__init__(db, User)

    def get_by_credentials(self, username: str, birthdate: str) -> Optional[User]:
        """根据姓名和生日获取用户"""
        return self.get_first_by(username=username, birthdate=birthdate)
