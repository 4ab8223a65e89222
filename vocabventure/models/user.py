from sqlalchemy import Column, String, DateTime, UniqueConstraint
from .base import BaseModel
from vocabventure.utils.helpers import utc_now, format_timestamp

"""
用户模型
姓名 + 生日共同作为登录凭据，注册后不再修改，也不会被引擎删除。
"""
class User(BaseModel):
    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("username", "birthdate"),
    )

    username = Column(String, nullable=False)
    birthdate = Column(String, nullable=False)
    created_at = Column(DateTime, default=utc_now)

    def to_dict(self):
        return {
            "id": self.id,
            "username": self.username,
            "birthdate": self.birthdate,
            "created_at": format_timestamp(self.created_at)
        }
