import sys
import os
import logging
from typing import Optional

# Ensure the 'characters', 'implants' and 'utils' directories can be found
# This adds the project root directory to the Python path.
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import config
from characters.api_key import APIKey
from characters.character import Character, MINING_SKILLS
from characters.errors import RefreshError
from characters.in_memory_character_db import InMemoryCharacterDB
from implants.in_memory_implant_db import InMemoryImplantDB

# --- Logging Configuration ---
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s')


def load_roster(implant_db: InMemoryImplantDB) -> InMemoryCharacterDB:
    """Loads the saved roster, or builds a new one from the keys in keys.json."""
    if os.path.isfile(config.CHARACTER_SAVE_FILE):
        return InMemoryCharacterDB.from_file(config.CHARACTER_SAVE_FILE, implant_db)

    logging.info("No saved characters, seeding from %d API keys.", len(config.API_KEYS))
    character_db = InMemoryCharacterDB()
    for key_id, verification in config.API_KEYS:
        api_key = APIKey(key_id, verification)
        try:
            character_db.load_characters_for_key(api_key)
        except RefreshError as e:
            # Keep the key so it is saved and retried next run
            logging.warning("Could not list characters for key %s: %s", key_id, e)
            character_db.add_api_key(api_key)
    return character_db


def format_status(character: Character, error: Optional[RefreshError] = None) -> str:
    """One report line for a pilot: the refresh error, or how many mining skills are trained."""
    if error is not None:
        return f"{character.name}: {error}"
    trained = sum(1 for skill_id in MINING_SKILLS if character.get_skill_level(skill_id) > 0)
    return f"{character.name}: OK, {trained}/{len(MINING_SKILLS)} mining skills trained"


def main():
    """Refreshes every known pilot once from the API and saves the roster."""
    print("Refreshing pilots...")
    implant_db = InMemoryImplantDB(config.IMPLANT_DATA_FILE)
    character_db = load_roster(implant_db)

    failures = character_db.refresh_all(implant_db)
    for character in character_db.get_all_characters():
        print(format_status(character, failures.get(character.character_id)))

    character_db.save(config.CHARACTER_SAVE_FILE)


if __name__ == "__main__":
    main()
