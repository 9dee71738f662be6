"""
tests/test_owner_resolution.py

Pytest unit tests for the strategies attributing imported rows to users.
"""

from __future__ import annotations

import logging

import pytest

from app.services.owner_resolution import (
    DirectoryUser,
    ExactNameResolver,
    MappingTableResolver,
    NormalizedNameResolver,
    build_owner_resolver,
    normalize_person_name,
)

JOAO = DirectoryUser(user_id="u-joao", full_name="João Silva", team_id="team-a")
MARIA = DirectoryUser(user_id="u-maria", full_name="Maria Oliveira", team_id="team-b")
MARIA_2 = DirectoryUser(user_id="u-maria2", full_name="Maria Santos", team_id=None)
USERS = [JOAO, MARIA, MARIA_2]


def test_normalize_person_name() -> None:
    assert normalize_person_name("  JOÃO   Silva ") == "joao silva"
    assert normalize_person_name(None) == ""


class TestExactNameResolver:
    def test_case_insensitive_full_name(self) -> None:
        resolver = ExactNameResolver(USERS)
        assert resolver.resolve("joão silva") == JOAO

    def test_accents_must_match(self) -> None:
        resolver = ExactNameResolver(USERS)
        assert resolver.resolve("Joao Silva") is None

    def test_blank_name(self) -> None:
        assert ExactNameResolver(USERS).resolve("  ") is None


class TestNormalizedNameResolver:
    def test_accent_insensitive(self) -> None:
        resolver = NormalizedNameResolver(USERS)
        assert resolver.resolve("JOAO  SILVA") == JOAO

    def test_unique_first_name(self) -> None:
        resolver = NormalizedNameResolver(USERS)
        assert resolver.resolve("João") == JOAO

    def test_ambiguous_first_name_is_unmatched(self) -> None:
        resolver = NormalizedNameResolver(USERS)
        assert resolver.resolve("Maria") is None

    def test_unknown_name(self) -> None:
        assert NormalizedNameResolver(USERS).resolve("Pedro") is None


class TestMappingTableResolver:
    def test_mapping_wins_over_name_match(self) -> None:
        resolver = MappingTableResolver(USERS, {"Dra. Maria": "u-maria2"})
        assert resolver.resolve("dra. maria") == MARIA_2

    def test_falls_back_to_normalized_match(self) -> None:
        resolver = MappingTableResolver(USERS, {})
        assert resolver.resolve("Maria Oliveira") == MARIA

    def test_mapping_to_unknown_user_is_ignored(self, caplog) -> None:
        with caplog.at_level(logging.WARNING):
            resolver = MappingTableResolver(USERS, {"Fulano": "u-missing"})
        assert resolver.resolve("Fulano") is None
        assert "unknown user" in caplog.text


class TestBuildOwnerResolver:
    @pytest.mark.parametrize(
        ("strategy", "expected_type"),
        [
            ("exact", ExactNameResolver),
            ("normalized", NormalizedNameResolver),
            ("mapping", MappingTableResolver),
        ],
    )
    def test_known_strategies(self, strategy, expected_type) -> None:
        assert isinstance(build_owner_resolver(strategy, users=USERS), expected_type)

    def test_unknown_strategy(self) -> None:
        with pytest.raises(ValueError):
            build_owner_resolver("fuzzy", users=USERS)
