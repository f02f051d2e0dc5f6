"""Defines the Character database interface."""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from characters.api_key import APIKey
from characters.character import Character
from characters.errors import RefreshError
from implants.implant_db import ImplantDatabase
from utils.eve_api import Fetcher


class CharacterDatabase(ABC):
    """Abstract base class defining the interface for a character database.

    Responsibilities:
    - Owning the Character objects of every known API key.
    - Storing and retrieving Character objects.
    - Refreshing characters from the API on request.
    """

    @abstractmethod
    def add_character(self, character: Character) -> None:
        """Adds a character to the database.

        Raises:
            ValueError: If a character with the same ID is already present.
        """
        pass

    @abstractmethod
    def remove_character(self, character_id: int) -> bool:
        """Removes a character. Returns False if the ID was not present."""
        pass

    @abstractmethod
    def get_character_by_name(self, name: str) -> Optional[Character]:
        """Finds a character using a potentially fuzzy name lookup.

        Args:
            name: The name (or partial name) to search for.

        Returns:
            The matching Character object, or None if no suitable match is found.
        """
        pass

    @abstractmethod
    def get_character_by_id(self, character_id: int) -> Optional[Character]:
        """Retrieves a character directly by their character ID.

        Args:
            character_id: The EVE character ID.

        Returns:
            The Character object, or None if the ID is not found.
        """
        pass

    @abstractmethod
    def get_all_characters(self) -> List[Character]:
        """Returns a list of all characters currently loaded in the database."""
        pass

    @abstractmethod
    def get_characters_for_key(self, key_id: int) -> List[Character]:
        """Returns the characters owned by the API key with the given key ID."""
        pass

    @abstractmethod
    def replace_api_key(self, api_key: APIKey) -> int:
        """Moves the characters of a re-entered key over to its new version.

        Every character owned by a key with the same key ID is replaced by a
        blank clone owned by api_key, to be refreshed afterwards.

        Returns:
            The number of characters replaced.
        """
        pass

    @abstractmethod
    def refresh_all(
        self, implant_db: ImplantDatabase, fetcher: Optional[Fetcher] = None
    ) -> Dict[int, RefreshError]:
        """Refreshes every character once from the API.

        Returns:
            The failures, keyed by character ID. Empty when all succeeded.
        """
        pass
