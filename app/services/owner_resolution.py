"""
app/services/owner_resolution.py

Strategies that attribute an imported record to a known user from the
free-text seller or professional name typed into the spreadsheet.
"""

from __future__ import annotations

import logging
import unicodedata
from dataclasses import dataclass
from typing import Mapping, Protocol, Sequence

from db.models.user_directory import UserProfile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DirectoryUser:
    user_id: str
    full_name: str
    team_id: str | None


class OwnerResolver(Protocol):
    """
    Resolve a free-text name to a directory user, or None when unmatched.
    """

    def resolve(self, name: str | None) -> DirectoryUser | None: ...


def normalize_person_name(name: str | None) -> str:
    """
    Strip accents, collapse whitespace and case-fold.
    """

    if not name:
        return ""
    decomposed = unicodedata.normalize("NFKD", name)
    without_accents = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return " ".join(without_accents.split()).casefold()


def users_from_profiles(profiles: Sequence[UserProfile]) -> list[DirectoryUser]:
    return [
        DirectoryUser(user_id=profile.id, full_name=profile.full_name, team_id=profile.team_id)
        for profile in profiles
        if profile.full_name and profile.full_name.strip()
    ]


class ExactNameResolver:
    """
    Case-insensitive exact match on the full name.
    """

    def __init__(self, users: Sequence[DirectoryUser]) -> None:
        self._by_name: dict[str, DirectoryUser] = {}
        for user in users:
            self._by_name.setdefault(user.full_name.strip().lower(), user)

    def resolve(self, name: str | None) -> DirectoryUser | None:
        if not name or not name.strip():
            return None
        return self._by_name.get(name.strip().lower())


class NormalizedNameResolver:
    """
    Accent- and whitespace-insensitive match on the full name, falling back
    to the first name when exactly one user carries it.
    """

    def __init__(self, users: Sequence[DirectoryUser]) -> None:
        self._by_name: dict[str, DirectoryUser] = {}
        first_names: dict[str, list[DirectoryUser]] = {}
        for user in users:
            normalized = normalize_person_name(user.full_name)
            if not normalized:
                continue
            self._by_name.setdefault(normalized, user)
            first_names.setdefault(normalized.split(" ", 1)[0], []).append(user)
        self._by_first_name = {
            first: matches[0] for first, matches in first_names.items() if len(matches) == 1
        }

    def resolve(self, name: str | None) -> DirectoryUser | None:
        normalized = normalize_person_name(name)
        if not normalized:
            return None
        match = self._by_name.get(normalized)
        if match is not None:
            return match
        return self._by_first_name.get(normalized.split(" ", 1)[0])


class MappingTableResolver:
    """
    External name-mapping table first, then the normalized strategy.
    """

    def __init__(self, users: Sequence[DirectoryUser], name_mappings: Mapping[str, str]) -> None:
        users_by_id = {user.user_id: user for user in users}
        self._mapped: dict[str, DirectoryUser] = {}
        for external_name, user_id in name_mappings.items():
            user = users_by_id.get(user_id)
            if user is None:
                logger.warning(
                    "Name mapping points to unknown user external_name=%r user_id=%s",
                    external_name,
                    user_id,
                )
                continue
            self._mapped[normalize_person_name(external_name)] = user
        self._fallback = NormalizedNameResolver(users)

    def resolve(self, name: str | None) -> DirectoryUser | None:
        normalized = normalize_person_name(name)
        if not normalized:
            return None
        return self._mapped.get(normalized) or self._fallback.resolve(name)


def build_owner_resolver(
    strategy: str,
    *,
    users: Sequence[DirectoryUser],
    name_mappings: Mapping[str, str] | None = None,
) -> OwnerResolver:
    if strategy == "exact":
        return ExactNameResolver(users)
    if strategy == "normalized":
        return NormalizedNameResolver(users)
    if strategy == "mapping":
        return MappingTableResolver(users, name_mappings or {})
    raise ValueError(f"Unknown owner resolution strategy: {strategy!r}")
