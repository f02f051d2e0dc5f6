"""
This module defines the Character class: a pilot with skill levels and three
implant slots, which can be saved to XML and refreshed from the EVE API.

A Character is shared between the UI thread and background refresh threads.
Every read and write of its skills and implants goes through one lock, and a
refresh swaps all of them in a single locked step, so readers never see a
half-updated pilot.
"""

import logging
import threading
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Dict, Optional

from characters.api_key import APIKey
from characters.errors import (
    CharacterParseError,
    MalformedDataError,
    MissingSectionError,
)
from implants.implant_db import IMPLANT_SLOTS, NO_IMPLANT, Implant, ImplantDatabase
from utils import eve_api
from utils.eve_api import Fetcher

SKILL_ASTROGEOLOGY = 3410
SKILL_DRONE_INTERFACING = 3442
SKILL_DRONES = 3436
SKILL_EXHUMERS = 22551
SKILL_EXPEDITION_FRIGATES = 33856
SKILL_GAS_CLOUD_HARVESTING = 25544
SKILL_ICE_HARVESTING = 16281
SKILL_MINING = 3386
SKILL_MINING_BARGE = 17940
SKILL_MINING_DRONE_OPERATION = 3438
SKILL_MINING_FRIGATE = 32918

MINING_SKILLS = (
    SKILL_ASTROGEOLOGY,
    SKILL_DRONE_INTERFACING,
    SKILL_DRONES,
    SKILL_EXHUMERS,
    SKILL_EXPEDITION_FRIGATES,
    SKILL_GAS_CLOUD_HARVESTING,
    SKILL_ICE_HARVESTING,
    SKILL_MINING,
    SKILL_MINING_BARGE,
    SKILL_MINING_DRONE_OPERATION,
    SKILL_MINING_FRIGATE,
)

MAX_SKILL_LEVEL = 5


@dataclass(frozen=True)
class CharacterSnapshot:
    """A consistent, read-only copy of a character's state."""

    character_id: int
    name: str
    skills: Dict[int, int] = field(default_factory=dict)
    implants: Dict[int, Implant] = field(default_factory=dict)


def _empty_slots() -> Dict[int, Implant]:
    return {slot: NO_IMPLANT for slot in IMPLANT_SLOTS}


def _place_implant(slots: Dict[int, Implant], implant: Optional[Implant]):
    """Puts a resolved implant into its own slot. Unknown implants are skipped."""
    if implant is not None and implant.slot in slots:
        slots[implant.slot] = implant


class Character:
    """
    A pilot, identified by its character ID and name.

    Attributes:
        character_id: The EVE character ID. Never changes.
        name: The character's name. Never changes.
        api_key: The API key used to refresh this character.
    """

    def __init__(self, character_id: int, name: str, api_key: APIKey):
        self._character_id = character_id
        self._name = name
        self._api_key = api_key

        self._lock = threading.Lock()
        self._skills: Dict[int, int] = {}
        self._implants: Dict[int, Implant] = _empty_slots()

    @property
    def character_id(self) -> int:
        return self._character_id

    @property
    def name(self) -> str:
        return self._name

    @property
    def api_key(self) -> APIKey:
        return self._api_key

    # --- Serialization ---

    @classmethod
    def from_xml_element(
        cls, root: ET.Element, api_key: APIKey, implant_db: ImplantDatabase
    ) -> "Character":
        """
        Builds a character from a saved <character> element.

        Implant IDs the catalog does not know are dropped.

        Args:
            root: The <character> element, as produced by to_xml_element().
            api_key: The key that owns the character.
            implant_db: Catalog used to resolve implant IDs.

        Raises:
            CharacterParseError: If the id attribute is missing or not an
                integer, or a skill or implant entry is malformed.
        """
        raw_id = root.get("id")
        if raw_id is None:
            raise CharacterParseError("Character element has no 'id' attribute.")
        try:
            character_id = int(raw_id)
        except ValueError as e:
            raise CharacterParseError(f"Invalid character id: {raw_id!r}") from e

        name = root.findtext("name", default="")
        skills: Dict[int, int] = {}
        slots = _empty_slots()

        try:
            skill_set = root.find("skills")
            if skill_set is not None:
                for skill in skill_set.findall("skill"):
                    skills[int(skill.get("id"))] = int(skill.get("value"))

            implant_set = root.find("implants")
            if implant_set is not None:
                for implant_elem in implant_set.findall("implant"):
                    implant_id = int(implant_elem.get("id"))
                    _place_implant(slots, implant_db.get_implant_by_id(implant_id))
        except (TypeError, ValueError) as e:
            raise CharacterParseError(
                f"Character {character_id}: malformed skill or implant entry: {e}"
            ) from e

        character = cls(character_id, name, api_key)
        character._skills = skills
        character._implants = slots
        return character

    def to_xml_element(self) -> ET.Element:
        """Returns an XML element with the character's data, to be used in saving."""
        with self._lock:
            root = ET.Element("character", {"id": str(self._character_id)})
            ET.SubElement(root, "name").text = self._name

            skill_set = ET.SubElement(root, "skills")
            for skill_id, level in self._skills.items():
                ET.SubElement(
                    skill_set, "skill", {"id": str(skill_id), "value": str(level)}
                )

            implant_set = ET.SubElement(root, "implants")
            for slot in IMPLANT_SLOTS:
                implant = self._implants[slot]
                if implant is not NO_IMPLANT:
                    ET.SubElement(
                        implant_set, "implant", {"id": str(implant.unique_id)}
                    )

            return root

    # --- Skills ---

    def get_skill_level(self, skill_id: int) -> int:
        """Returns the level of a skill, or 0 for a skill the character doesn't have."""
        with self._lock:
            return self._skills.get(skill_id, 0)

    def set_skill_level(self, skill_id: int, level: int) -> None:
        """
        Sets the level of a skill.

        Invalid input is ignored without any signal: a None skill ID, or a
        level that is not an integer between 0 and 5.
        """
        if skill_id is None or isinstance(level, bool) or not isinstance(level, int):
            return
        if level < 0 or level > MAX_SKILL_LEVEL:
            return
        with self._lock:
            self._skills[skill_id] = level

    def get_skills(self) -> Dict[int, int]:
        """Returns a copy of all skill levels."""
        with self._lock:
            return dict(self._skills)

    # --- Implants ---

    def get_implant(self, slot: int) -> Implant:
        """
        Returns the implant in a slot, or NO_IMPLANT for an empty slot.

        Raises:
            ValueError: If slot is not 7, 8 or 10.
        """
        if slot not in IMPLANT_SLOTS:
            raise ValueError(f"Unknown implant slot: {slot}")
        with self._lock:
            return self._implants[slot]

    def set_implant(self, slot: int, implant: Implant) -> None:
        """
        Puts an implant into a slot.

        Nothing happens unless the implant belongs to that slot, or is
        NO_IMPLANT (which clears the slot).
        """
        if slot not in IMPLANT_SLOTS or implant is None:
            return
        if implant is not NO_IMPLANT and implant.slot != slot:
            return
        with self._lock:
            self._implants[slot] = implant

    def get_snapshot(self) -> CharacterSnapshot:
        """Returns skills and implants as they were at one single moment."""
        with self._lock:
            return CharacterSnapshot(
                character_id=self._character_id,
                name=self._name,
                skills=dict(self._skills),
                implants=dict(self._implants),
            )

    # --- Remote refresh ---

    def load_api_data(
        self, implant_db: ImplantDatabase, fetcher: Optional[Fetcher] = None
    ) -> None:
        """
        Loads the character sheet from the API into this object.

        Either completes fully or doesn't change anything at all. The lock is
        only taken for the final swap; fetching and parsing happen outside it.

        Args:
            implant_db: Catalog used to resolve implant IDs. Implants it does
                not know are skipped.
            fetcher: Callable performing the request, eve_api.fetch by default.

        Raises:
            RefreshError: One of its subclasses, with a message that can be
                shown to the end user.
        """
        url = eve_api.build_character_sheet_url(self._api_key, self._character_id)
        root = eve_api.fetch_document(
            url,
            fetcher,
            context=f"key: {self._api_key.key_id}, char id: {self._character_id}",
        )

        try:
            new_skills, new_implants = self._parse_character_sheet(root, implant_db)
        except (TypeError, ValueError, AttributeError, LookupError) as e:
            logging.exception("Critical failure during API parsing")
            raise MalformedDataError("Unable to parse data, please see logs.") from e

        with self._lock:
            self._skills = new_skills
            self._implants = new_implants

        logging.info(
            "Loaded %d skills for %s (%s)", len(new_skills), self._name, self._character_id
        )

    def _parse_character_sheet(self, root: ET.Element, implant_db: ImplantDatabase):
        """Builds replacement skills and implant slots from a CharacterSheet document."""
        result = root.find("result")
        if result is None:
            raise ValueError("Character sheet has no result element.")

        # There will be several rowsets, we need "skills" and "implants"
        skill_rowset = None
        implant_rowset = None
        for rowset in result.findall("rowset"):
            rowset_name = rowset.get("name")
            if rowset_name is None:
                raise ValueError("Rowset without a name attribute.")
            if rowset_name == "skills":
                skill_rowset = rowset
            elif rowset_name == "implants":
                implant_rowset = rowset

        if skill_rowset is None:
            raise MissingSectionError("skills", self._name)
        if implant_rowset is None:
            raise MissingSectionError("implants", self._name)

        new_skills: Dict[int, int] = {}
        for row in skill_rowset.findall("row"):
            new_skills[int(row.get("typeID"))] = int(row.get("level"))

        new_implants = _empty_slots()
        for row in implant_rowset.findall("row"):
            implant_id = int(row.get("typeID"))
            _place_implant(new_implants, implant_db.get_implant_by_id(implant_id))

        return new_skills, new_implants

    # --- Cloning ---

    def clone(self) -> "Character":
        """Returns a copy with the same key and independent skills and implants."""
        out = Character(self._character_id, self._name, self._api_key)
        with self._lock:
            out._skills = dict(self._skills)
            out._implants = dict(self._implants)
        return out

    def clone_with_api_key(self, api_key: APIKey) -> "Character":
        """Returns a blank character with the same ID and name, owned by another key."""
        return Character(self._character_id, self._name, api_key)

    def __str__(self):
        return self._name

    def __repr__(self):
        return f"Character(character_id={self._character_id!r}, name={self._name!r})"
