"""
db/models/user_directory.py

Read-only view of the user directory consumed by the importers to attribute
records to an owning user and team.
"""

from __future__ import annotations

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, CreatedAtMixin


class Team(Base, CreatedAtMixin):
    __tablename__ = "teams"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)


class UserProfile(Base, CreatedAtMixin):
    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    full_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    team_id: Mapped[str | None] = mapped_column(ForeignKey("teams.id"), nullable=True)


class UserNameMapping(Base, CreatedAtMixin):
    """
    Maps a free-text name found in spreadsheets to a known user.
    """

    __tablename__ = "user_name_mappings"

    external_name: Mapped[str] = mapped_column(String(255), primary_key=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("profiles.id"), nullable=False)
