"""
数据库模型基类（SQLAlchemy 2.0 风格）

宿主表沿用宿主自己的命名；只有网关新增的约束/索引走下面的命名约定。
"""
from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase

NAMING_CONVENTION = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


# 仅开发环境 create_tables 使用
metadata = Base.metadata
