"""
Field model: the stadiums matches are played on.
"""

from typing import TYPE_CHECKING

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base

if TYPE_CHECKING:
    from models.team import Team


class Field(Base):
    """A field (stadium). A field can be the home field of several teams."""
    __tablename__ = "fields"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    home_teams: Mapped[list["Team"]] = relationship(back_populates="home_field")

    def __repr__(self) -> str:
        return f"<Field(id='{self.id}', name='{self.name}')>"
