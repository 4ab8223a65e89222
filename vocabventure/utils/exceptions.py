"""
引擎异常定义

SchemaError 在启动时是致命的；MigrationError 回滚后由存储层吞掉并进入兼容模式；
ConstraintViolation 在服务层转换为失败结果；NotFoundError 只用于未知的调用方法，
空查询返回 0 / None / [] 而不是抛异常。
"""


class VocabVentureError(Exception):
    """引擎异常基类"""


class SchemaError(VocabVentureError):
    """建表DDL失败"""


class MigrationError(VocabVentureError):
    """旧表结构迁移失败（事务已回滚）"""


class ConstraintViolation(VocabVentureError):
    """唯一约束冲突，例如重复注册"""


class NotFoundError(VocabVentureError):
    """调用的方法不存在"""
