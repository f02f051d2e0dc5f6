"""Configuration settings for the pilot roster."""

import json

# --- API Key Loading ---
# Seed API keys from a private JSON file: [{"key_id": 123, "verification": "..."}]
API_KEYS = []
try:
    with open("keys.json", "r") as f:
        keys = json.load(f)
        API_KEYS = [
            (int(entry["key_id"]), str(entry["verification"])) for entry in keys
        ]
except (FileNotFoundError, json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
    print(f"Warning: Could not load API keys from keys.json: {e}")


APP_VERSION = "0.1.0"

# Remote API Configuration (for utils/eve_api.py)
API_BASE_URL = "https://api.eveonline.com"
CHARACTER_SHEET_PATH = "/char/CharacterSheet.xml.aspx"
CHARACTER_LIST_PATH = "/account/Characters.xml.aspx"

# CCP asks API clients to identify themselves
USER_AGENT = f"PilotRoster {APP_VERSION}"

REQUEST_TIMEOUT = 30  # Seconds, applied to connect and read

# --- Data Files ---
# JSON list of known implant definitions
IMPLANT_DATA_FILE = "data/implants.json"

# XML file holding API keys and their characters
CHARACTER_SAVE_FILE = "characters.xml"
