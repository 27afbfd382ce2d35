"""
Team model: the clubs that can be entered into a tournament.
"""

from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, Integer, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base

if TYPE_CHECKING:
    from models.field import Field


class Team(Base):
    """
    A team in the catalog.

    Tournaments refer to teams by their string id, so the id is chosen by
    the user (e.g. "lions") rather than generated.
    """
    __tablename__ = "teams"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    # Base skill of the team when controlled by the AI
    ai_skill: Mapped[int] = mapped_column(Integer, default=1)

    home_field_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("fields.id"),
        nullable=True
    )
    home_field: Mapped[Optional["Field"]] = relationship(back_populates="home_teams")

    def __repr__(self) -> str:
        return f"<Team(id='{self.id}', name='{self.name}', ai_skill={self.ai_skill})>"
