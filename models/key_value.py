"""
Key-value model used to save the active tournament.
"""

import enum

from sqlalchemy import String, Text, Enum
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base


class ValueType(enum.Enum):
    """Type of a stored value."""
    STRING = "str"
    INT = "int"
    BOOL = "bool"


class KeyValueEntry(Base):
    """One saved scalar. Values are stored as text and converted on read."""
    __tablename__ = "key_values"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value_type: Mapped[ValueType] = mapped_column(Enum(ValueType), nullable=False)
    value: Mapped[str] = mapped_column(Text, nullable=False, default="")

    def __repr__(self) -> str:
        return f"<KeyValueEntry(key='{self.key}', type={self.value_type.value}, value='{self.value}')>"
