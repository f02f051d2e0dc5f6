"""Defines the Implant database interface and data structures."""

from abc import ABC, abstractmethod
from typing import List, Set, Optional, Dict, Any
from dataclasses import dataclass, field

# Slot tags an implant can be plugged into, in display order
IMPLANT_SLOTS = (7, 8, 10)


@dataclass(frozen=True)
class Implant:
    """Data structure representing an implant definition."""

    unique_id: int  # EVE type ID (e.g., 22534)
    names: Set[str]  # Names the implant might be known by
    description: str  # Text description shown to the user.
    slot: int  # Slot tag the implant plugs into (7, 8 or 10)
    properties: Dict[str, Any] = field(
        default_factory=dict, compare=False, hash=False
    )  # Bonuses and other attributes (e.g., {"mining_yield_bonus": 5})

    def __post_init__(self):
        """Validate required fields after initialization."""
        if isinstance(self.unique_id, bool) or not isinstance(self.unique_id, int):
            raise TypeError("Implant unique_id must be an integer.")
        if not self.names:
            raise ValueError("Implant names cannot be empty.")
        if not self.description:
            raise ValueError("Implant description cannot be empty.")
        # Only the empty placeholder lives outside the real slots
        if self.unique_id != 0 and self.slot not in IMPLANT_SLOTS:
            raise ValueError(
                f"Implant slot must be one of {IMPLANT_SLOTS}, got {self.slot}."
            )
        # frozenset keeps the dataclass hashable
        object.__setattr__(self, "names", frozenset(self.names))

    def __str__(self):
        if self.unique_id == 0:
            return "Nothing"
        return sorted(self.names)[0]


# Placeholder for an empty slot. Never None.
NO_IMPLANT = Implant(
    unique_id=0, names={"Nothing"}, description="Empty implant slot.", slot=0
)


class ImplantDatabase(ABC):
    """Abstract base class defining the interface for an implant catalog.

    Responsibilities:
    - Loading implant definitions.
    - Resolving implant type IDs to Implant objects.
    """

    @classmethod
    @abstractmethod
    def get_from_data(cls, implant_data: List[Dict]) -> "ImplantDatabase":
        """Creates a database instance from a list of implant data dictionaries.

        Args:
            implant_data: A list where each element is a dictionary conforming
                          to the expected implant JSON structure.

        Returns:
            An instance of the ImplantDatabase populated with the provided data.

        Raises:
            ValueError: If any dictionary in the list is invalid.
        """
        pass

    @abstractmethod
    def get_implant_by_id(self, implant_id: int) -> Optional[Implant]:
        """Retrieves an implant directly by its type ID.

        Args:
            implant_id: The EVE type ID of the implant.

        Returns:
            The Implant object, or None if the ID is not known.
        """
        pass

    @abstractmethod
    def get_implant_by_name(self, name: str) -> Optional[Implant]:
        """Finds an implant using a potentially fuzzy name lookup."""
        pass

    @abstractmethod
    def get_implants_for_slot(self, slot: int) -> List[Implant]:
        """Returns all implants that plug into the given slot."""
        pass

    @abstractmethod
    def get_all_implants(self) -> List[Implant]:
        """Returns a list of all implants currently loaded in the database."""
        pass
