"""Declarative base shared by all models."""

from sqlalchemy import MetaData
from sqlalchemy.orm import declarative_base

# Stable constraint names keep Alembic autogenerate diffs quiet
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "pk": "pk_%(table_name)s",
}

Base = declarative_base(metadata=MetaData(naming_convention=NAMING_CONVENTION))
