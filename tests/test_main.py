"""Tests for the command line report."""

import pytest

from characters.api_key import APIKey
from characters.character import (
    Character,
    MINING_SKILLS,
    SKILL_GAS_CLOUD_HARVESTING,
    SKILL_MINING,
)
from characters.errors import RemoteAPIError
from main import format_status


@pytest.fixture
def character():
    return Character(90000001, "Ore Hauler", APIKey(key_id=1001, verification="abc"))


def test_format_status_counts_trained_mining_skills(character):
    character.set_skill_level(SKILL_MINING, 5)
    character.set_skill_level(SKILL_GAS_CLOUD_HARVESTING, 1)
    # Untrained skills do not count
    character.set_skill_level(MINING_SKILLS[0], 0)

    assert format_status(character) == (
        f"Ore Hauler: OK, 2/{len(MINING_SKILLS)} mining skills trained"
    )


def test_format_status_blank_character(character):
    assert format_status(character) == (
        f"Ore Hauler: OK, 0/{len(MINING_SKILLS)} mining skills trained"
    )


def test_format_status_reports_refresh_error(character):
    error = RemoteAPIError(203, "Authentication Failure")
    assert format_status(character, error) == "Ore Hauler: API Error: Authentication Failure"
