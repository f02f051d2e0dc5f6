"""In-memory implementation of the ImplantDatabase interface."""

import os
import json
from typing import List, Optional, Dict, Set
import logging

# Import the interface and data structures
from .implant_db import ImplantDatabase, Implant
from thefuzz import process


class InMemoryImplantDB(ImplantDatabase):
    """Stores and resolves implant definitions entirely in memory, loaded on initialization."""

    def __init__(self, json_file_path: str):
        """Initializes the database by loading implant data from a single JSON file.

        Args:
            json_file_path: The path to the JSON file containing a list of implant
                dictionaries.

        Raises:
            FileNotFoundError: If the JSON file does not exist.
            ValueError: If the file is invalid JSON, or contains invalid implant data.
        """
        self._implants: Dict[int, Implant] = {}
        logging.info("Initializing InMemoryImplantDB from: %s", json_file_path)

        if not os.path.isfile(json_file_path):
            raise FileNotFoundError(f"Implant data file not found: {json_file_path}")

        try:
            with open(json_file_path, "r", encoding="utf-8") as f:
                implant_data_list = json.load(f)

            if not isinstance(implant_data_list, list):
                raise ValueError("Implant data file must contain a JSON list.")

            for data in implant_data_list:
                data["_source_file"] = json_file_path  # Add source for error reporting
                self._process_and_add_implant_data(data)

            logging.info(
                "Finished initialization. Loaded %d implants from %s.",
                len(self._implants),
                json_file_path,
            )

        except json.JSONDecodeError as e:
            logging.error("Invalid JSON in file %s: %s", json_file_path, e)
            raise ValueError(f"Invalid JSON in {json_file_path}") from e
        except (ValueError, TypeError) as e:
            # Error during implant processing/validation
            logging.error("Invalid implant data in %s: %s", json_file_path, e)
            raise

    @classmethod
    def get_from_data(cls, implant_data: List[Dict]) -> "InMemoryImplantDB":
        """Creates a database instance from a list of implant data dictionaries."""
        db_instance = cls.__new__(cls)  # Create instance without calling __init__
        db_instance._implants = {}
        logging.info(
            "Initializing InMemoryImplantDB from data list (%d items)", len(implant_data)
        )

        for i, data in enumerate(implant_data):
            try:
                db_instance._process_and_add_implant_data(data)
            except (ValueError, TypeError) as e:
                raise ValueError(
                    f"Failed to process implant data at index {i}: {e}"
                ) from e

        logging.info(
            "Finished initialization from data. Loaded %d implants.",
            len(db_instance._implants),
        )
        return db_instance

    # --- Helper Method ---
    def _process_and_add_implant_data(self, data: Dict):
        """Parses an implant data dictionary and adds the Implant to the DB."""
        unique_id = data.get("unique_id")
        source = data.get("_source_file", "input data")

        names_list = data.get("names", [])
        if not isinstance(names_list, list):
            raise TypeError(
                f"Source '{source}', Implant '{unique_id}': 'names' field must be a list."
            )
        if unique_id == 0:
            raise ValueError(
                f"Source '{source}': implant ID 0 is reserved for the empty slot."
            )

        # Create Implant object (performs validation)
        implant = Implant(
            unique_id=unique_id,
            names=set(names_list),
            description=data.get("description", ""),
            slot=data.get("slot", 0),
            properties=data.get("properties", {}),
        )

        self._add_implant(implant)

    # --- Core Data Storage and Access ---
    def _add_implant(self, implant: Implant):
        """Internal helper to add an implant."""
        if implant.unique_id in self._implants:
            raise ValueError(f"Duplicate implant ID attempted: {implant.unique_id}")
        self._implants[implant.unique_id] = implant

    def get_implant_by_id(self, implant_id: int) -> Optional[Implant]:
        """Resolves an implant type ID."""
        return self._implants.get(implant_id)

    def get_implant_by_name(self, name: str) -> Optional[Implant]:
        """Looks up an implant by name using fuzzy matching (thefuzz library)."""
        if not self._implants:
            return None

        # Build name map on the fly
        name_to_id_map: Dict[str, int] = {}
        ambiguous_names: Set[str] = set()
        for implant in self._implants.values():
            for implant_name in implant.names:
                lower_name = implant_name.lower()
                if (
                    lower_name in name_to_id_map
                    and name_to_id_map[lower_name] != implant.unique_id
                ):
                    ambiguous_names.add(lower_name)
                name_to_id_map[lower_name] = implant.unique_id

        lookup_name = name.lower()

        # Check for exact match first (respecting ambiguity)
        if lookup_name in name_to_id_map and lookup_name not in ambiguous_names:
            return self._implants.get(name_to_id_map[lookup_name])

        best_match, score = process.extractOne(lookup_name, list(name_to_id_map.keys()))

        match_threshold = 75

        if score >= match_threshold:
            if best_match in ambiguous_names:
                logging.warning(
                    "Fuzzy match '%s' for implant '%s' is ambiguous. "
                    "Returning one possibility.",
                    best_match,
                    name,
                )
            return self._implants.get(name_to_id_map[best_match])

        return None  # No good match found

    def get_implants_for_slot(self, slot: int) -> List[Implant]:
        """Returns the implants for one slot, ordered by type ID."""
        return sorted(
            (imp for imp in self._implants.values() if imp.slot == slot),
            key=lambda imp: imp.unique_id,
        )

    def get_all_implants(self) -> List[Implant]:
        """Returns a list of all loaded implants."""
        return list(self._implants.values())
