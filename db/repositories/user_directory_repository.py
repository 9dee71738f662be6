"""
Read-only access to teams, profiles and external name mappings.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models.user_directory import Team, UserNameMapping, UserProfile


class UserDirectoryRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def list_profiles(self) -> list[UserProfile]:
        stmt = select(UserProfile).order_by(UserProfile.id.asc())
        return list(self._session.scalars(stmt).all())

    def list_name_mappings(self) -> dict[str, str]:
        stmt = select(UserNameMapping.external_name, UserNameMapping.user_id)
        return {row.external_name: row.user_id for row in self._session.execute(stmt)}

    def first_team_id(self) -> str | None:
        stmt = select(Team.id).order_by(Team.created_at.asc(), Team.id.asc()).limit(1)
        return self._session.scalar(stmt)

    def team_exists(self, team_id: str) -> bool:
        return self._session.get(Team, team_id) is not None
