"""In-memory implementation of the CharacterDatabase interface."""

import os
import logging
import tempfile
import threading
import xml.etree.ElementTree as ET
from typing import Dict, List, Optional, Set

# Import the interface and data structures
from .character_db import CharacterDatabase
from .api_key import APIKey
from .character import Character
from .errors import CharacterParseError, MalformedDataError, RefreshError

from implants.implant_db import ImplantDatabase
from utils import eve_api
from utils.eve_api import Fetcher

from thefuzz import process


class InMemoryCharacterDB(CharacterDatabase):
    """Stores API keys and their characters in memory, saved to a single XML file.

    The database is shared between threads; its own lock only guards the
    key and character maps, never a character's state or a network call.
    """

    def __init__(self):
        """Initializes an empty character database."""
        self._lock = threading.Lock()
        self._api_keys: Dict[int, APIKey] = {}
        self._characters: Dict[int, Character] = {}
        logging.info("Initialized empty InMemoryCharacterDB.")

    # --- Loading and Saving ---

    @classmethod
    def from_file(
        cls, file_path: str, implant_db: ImplantDatabase
    ) -> "InMemoryCharacterDB":
        """Creates a database instance from a saved XML file.

        Args:
            file_path: Path to the file written by save().
            implant_db: Catalog used to resolve saved implant IDs.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If the file is not valid XML or holds invalid keys or
                characters.
        """
        logging.info("Initializing InMemoryCharacterDB from: %s", file_path)
        if not os.path.isfile(file_path):
            raise FileNotFoundError(f"Character file not found: {file_path}")

        try:
            root = ET.parse(file_path).getroot()
        except ET.ParseError as e:
            logging.error("Invalid XML in file %s: %s", file_path, e)
            raise ValueError(f"Invalid XML in {file_path}") from e

        return cls.from_xml_element(root, implant_db)

    @classmethod
    def from_xml_element(
        cls, root: ET.Element, implant_db: ImplantDatabase
    ) -> "InMemoryCharacterDB":
        """Creates a database instance from an <apikeys> element."""
        db_instance = cls()

        for i, key_elem in enumerate(root.findall("apikey")):
            try:
                api_key = APIKey(
                    key_id=int(key_elem.get("id")),
                    verification=key_elem.get("verification", ""),
                )
            except (TypeError, ValueError) as e:
                raise ValueError(f"Failed to load API key at index {i}: {e}") from e
            db_instance.add_api_key(api_key)

            for char_elem in key_elem.findall("character"):
                try:
                    character = Character.from_xml_element(char_elem, api_key, implant_db)
                except CharacterParseError as e:
                    raise ValueError(
                        f"Failed to load character for API key {api_key.key_id}: {e}"
                    ) from e
                db_instance.add_character(character)

        logging.info(
            "Finished initialization. Loaded %d API keys and %d characters.",
            len(db_instance._api_keys),
            len(db_instance._characters),
        )
        return db_instance

    def to_xml_element(self) -> ET.Element:
        """Returns an <apikeys> element with every key and its characters."""
        with self._lock:
            api_keys = list(self._api_keys.values())
            characters = list(self._characters.values())

        root = ET.Element("apikeys")
        for api_key in api_keys:
            key_elem = ET.SubElement(
                root,
                "apikey",
                {"id": str(api_key.key_id), "verification": api_key.verification},
            )
            for character in characters:
                if character.api_key.key_id == api_key.key_id:
                    key_elem.append(character.to_xml_element())
        return root

    def save(self, file_path: str) -> None:
        """Writes the database to an XML file, replacing it atomically."""
        tree = ET.ElementTree(self.to_xml_element())
        ET.indent(tree)

        directory = os.path.dirname(os.path.abspath(file_path))
        os.makedirs(directory, exist_ok=True)
        temp_path = None
        try:
            with tempfile.NamedTemporaryFile(
                "wb", dir=directory, suffix=".tmp", delete=False
            ) as handle:
                temp_path = handle.name
                tree.write(handle, encoding="utf-8", xml_declaration=True)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(temp_path, file_path)
            temp_path = None
        finally:
            if temp_path is not None:
                try:
                    os.remove(temp_path)
                except FileNotFoundError:
                    pass

        with self._lock:
            count = len(self._characters)
        logging.info("Saved %d characters to %s", count, file_path)

    # --- API Keys ---

    def add_api_key(self, api_key: APIKey) -> None:
        """Registers an API key, replacing a stored key with the same key ID."""
        with self._lock:
            self._api_keys[api_key.key_id] = api_key

    def get_api_keys(self) -> List[APIKey]:
        """Returns all known API keys."""
        with self._lock:
            return list(self._api_keys.values())

    def replace_api_key(self, api_key: APIKey) -> int:
        """Moves the characters of a re-entered key to blank clones owned by api_key."""
        replaced = 0
        with self._lock:
            self._api_keys[api_key.key_id] = api_key
            for character_id, character in list(self._characters.items()):
                if character.api_key.key_id == api_key.key_id:
                    self._characters[character_id] = character.clone_with_api_key(
                        api_key
                    )
                    replaced += 1

        logging.info(
            "Replaced API key %s on %d characters.", api_key.key_id, replaced
        )
        return replaced

    def load_characters_for_key(
        self, api_key: APIKey, fetcher: Optional[Fetcher] = None
    ) -> int:
        """Fetches the character list of an API key and adds the new characters.

        Characters already in the database are kept as they are.

        Returns:
            The number of characters added.

        Raises:
            RefreshError: If the list cannot be fetched or parsed.
        """
        root = eve_api.fetch_document(
            eve_api.build_character_list_url(api_key),
            fetcher,
            context=f"key: {api_key.key_id}",
        )

        try:
            rowset = root.find("result/rowset")
            if rowset is None:
                raise ValueError("Character list has no rowset element.")
            listed = [
                (int(row.get("characterID")), row.get("name") or "")
                for row in rowset.findall("row")
            ]
        except (TypeError, ValueError) as e:
            logging.exception("Critical failure during API parsing")
            raise MalformedDataError("Unable to parse data, please see logs.") from e

        self.add_api_key(api_key)
        added = 0
        with self._lock:
            for character_id, name in listed:
                if character_id not in self._characters:
                    self._characters[character_id] = Character(
                        character_id, name, api_key
                    )
                    added += 1

        logging.info("Added %d characters from API key %s", added, api_key.key_id)
        return added

    # --- Characters ---

    def add_character(self, character: Character) -> None:
        """Adds a character, registering its API key if needed."""
        with self._lock:
            if character.character_id in self._characters:
                raise ValueError(
                    f"Duplicate character ID attempted: {character.character_id}"
                )
            self._api_keys.setdefault(character.api_key.key_id, character.api_key)
            self._characters[character.character_id] = character

    def remove_character(self, character_id: int) -> bool:
        with self._lock:
            return self._characters.pop(character_id, None) is not None

    def get_character_by_name(self, name: str) -> Optional[Character]:
        """Looks up a character by name using fuzzy matching (builds map on the fly)."""
        with self._lock:
            characters = list(self._characters.values())
        if not characters:
            return None

        # --- Build name map on the fly ---
        name_to_id_map: Dict[str, int] = {}
        ambiguous_names: Set[str] = set()
        for char in characters:
            lower_name = char.name.lower()
            if (
                lower_name in name_to_id_map
                and name_to_id_map[lower_name] != char.character_id
            ):
                ambiguous_names.add(lower_name)
            name_to_id_map[lower_name] = char.character_id

        lookup_name = name.lower()

        # Check for exact match first (respecting ambiguity)
        if lookup_name in name_to_id_map and lookup_name not in ambiguous_names:
            return self.get_character_by_id(name_to_id_map[lookup_name])

        # If exact match fails or is ambiguous, proceed to fuzzy matching
        best_match, score = process.extractOne(lookup_name, list(name_to_id_map.keys()))

        match_threshold = 75

        if score >= match_threshold:
            if best_match in ambiguous_names:
                logging.warning(
                    "Fuzzy match '%s' for character '%s' is ambiguous. "
                    "Returning one possibility.",
                    best_match,
                    name,
                )
            return self.get_character_by_id(name_to_id_map[best_match])

        return None  # No good match found

    def get_character_by_id(self, character_id: int) -> Optional[Character]:
        """Retrieves a character by their character ID."""
        with self._lock:
            return self._characters.get(character_id)

    def get_all_characters(self) -> List[Character]:
        """Returns a list of all loaded characters."""
        with self._lock:
            return list(self._characters.values())

    def get_characters_for_key(self, key_id: int) -> List[Character]:
        with self._lock:
            return [
                char for char in self._characters.values() if char.api_key.key_id == key_id
            ]

    def refresh_all(
        self, implant_db: ImplantDatabase, fetcher: Optional[Fetcher] = None
    ) -> Dict[int, RefreshError]:
        """Refreshes every character once; a failure does not stop the others."""
        failures: Dict[int, RefreshError] = {}
        characters = self.get_all_characters()
        for character in characters:
            try:
                character.load_api_data(implant_db, fetcher)
            except RefreshError as e:
                logging.warning("Failed to refresh %s: %s", character, e)
                failures[character.character_id] = e

        logging.info(
            "Refreshed %d characters, %d failed.",
            len(characters) - len(failures),
            len(failures),
        )
        return failures
