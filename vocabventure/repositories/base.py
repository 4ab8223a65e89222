from typing import Optional, TypeVar, Generic
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from vocabventure.utils.exceptions import ConstraintViolation

T = TypeVar('T')

class BaseRepository(Generic[T]):
    """基础Repository类，提供通用的CRUD操作"""

    def __init__(self, db: Session, model_class: T):
        self.db = db
        self.model_class = model_class

    def get_by_id(self, id: int) -> Optional[T]:
        """根据ID获取记录"""
        return self.db.query(self.model_class).filter(self.model_class.id == id).first()

    def create(self, **kwargs) -> T:
        """创建新记录，唯一约束冲突时抛出 ConstraintViolation"""
        instance = self.model_class(**kwargs)
        self.db.add(instance)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConstraintViolation(f"{self.model_class.__tablename__} 唯一约束冲突") from e
        self.db.refresh(instance)
        return instance

    def get_first_by(self, **filters) -> Optional[T]:
        """根据条件获取第一条记录"""
        query = self.db.query(self.model_class)
        for attr, value in filters.items():
            if hasattr(self.model_class, attr):
                query = query.filter(getattr(self.model_class, attr) == value)
        return query.first()
