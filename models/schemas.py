"""
Pydantic schemas for data validation.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.tournament import TournamentType, FieldSelectSequence


# ============ Tournament Schemas ============

class TournamentSettings(BaseModel):
    """
    Static configuration of a tournament.

    Derived scheduling constants are computed by the engine
    (see engine.tournament_settings.derive_settings).
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, max_length=100)
    display_name: str = ""
    type: TournamentType = TournamentType.LOG
    max_teams: int = Field(default=4, ge=4, le=50)

    # Number of legs (log tournament only)
    num_face_each_other: int = Field(default=1, ge=1, le=10)

    # Percent chances (single elimination and group stages)
    humans_in_same_group_chance: float = Field(default=10.0, ge=0.0, le=100.0)
    humans_in_same_match_chance: float = Field(default=10.0, ge=0.0, le=100.0)

    field_select_sequence: FieldSelectSequence = FieldSelectSequence.ALTERNATE_HOME_AWAY
    max_ai_difficulty: int = Field(default=3, ge=0)

    @field_validator("id")
    @classmethod
    def id_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Tournament id cannot be empty")
        return v.strip()

    @property
    def name(self) -> str:
        """Display name, falling back to the id."""
        return self.display_name or self.id


# ============ Catalog Schemas ============

class TeamCreate(BaseModel):
    """Schema for adding a team to the catalog."""
    id: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=200)
    ai_skill: int = Field(default=1, ge=0, le=10)
    home_field_id: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name cannot be empty")
        return v.strip()


class FieldCreate(BaseModel):
    """Schema for adding a field (stadium) to the catalog."""
    id: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=200)
