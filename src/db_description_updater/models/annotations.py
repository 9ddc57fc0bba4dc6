"""
Description markers for model types and their properties.

Usage:
    @db_table_meta(description="Storage for persons. Has many addresses")
    class Person:
        first_name: Annotated[str, DbColumnMeta("Person's first name")]

Properties are skipped when they are virtual (``@property`` and friends),
even if they carry a DbColumnMeta marker.
"""

from dataclasses import dataclass
from typing import Optional

TABLE_META_ATTRIBUTE = '__db_table_meta__'


@dataclass(frozen=True)
class DbTableMeta:
    """Table-level description and optional explicit table name."""
    description: Optional[str] = None
    name: Optional[str] = None


@dataclass(frozen=True)
class DbColumnMeta:
    """Column-level description, used as a typing.Annotated marker."""
    description: Optional[str] = None
    name: Optional[str] = None


def db_table_meta(description: Optional[str] = None, name: Optional[str] = None):
    """
    Class decorator attaching a DbTableMeta to a model type.

    The marker is stored on the class itself and is not inherited by subclasses.
    """
    def decorator(cls):
        setattr(cls, TABLE_META_ATTRIBUTE, DbTableMeta(description=description, name=name))
        return cls
    return decorator


def get_table_meta(model_type: type) -> Optional[DbTableMeta]:
    """Return the DbTableMeta declared directly on model_type, if any."""
    return model_type.__dict__.get(TABLE_META_ATTRIBUTE)
