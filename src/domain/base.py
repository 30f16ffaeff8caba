"""Shared base for domain entities"""

import uuid
from sqlalchemy import BigInteger, Column, Integer
from sqlmodel import SQLModel


class BaseModel(SQLModel):
    """Base class for all SQLModel entities"""
    pass


def generate_uuid() -> str:
    return str(uuid.uuid4())


def id_column() -> Column:
    """Auto-increment BIGINT primary key (plain INTEGER on SQLite so rowid aliasing works)"""
    return Column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
