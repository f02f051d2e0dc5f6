"""Defines the APIKey credential used to authorize remote character requests."""

from dataclasses import dataclass
from typing import Dict


@dataclass(frozen=True)
class APIKey:
    """An EVE API key: the key ID plus its verification code.

    Characters keep a reference to the key they were loaded through. The key
    is only read when a request URL is built.
    """

    key_id: int
    verification: str

    def __post_init__(self):
        """Validate required fields after initialization."""
        if isinstance(self.key_id, bool) or not isinstance(self.key_id, int):
            raise TypeError("APIKey key_id must be an integer.")
        if not self.verification:
            raise ValueError("APIKey verification code cannot be empty.")

    def request_params(self) -> Dict[str, str]:
        """Returns the query parameters that authenticate a request."""
        return {"keyID": str(self.key_id), "vCode": self.verification}

    def __str__(self):
        return str(self.key_id)
