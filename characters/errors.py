"""Exceptions raised while loading or refreshing characters."""


class CharacterParseError(ValueError):
    """Raised when a stored character element cannot be turned into a Character."""


class RefreshError(Exception):
    """Base class for failures of a remote character refresh.

    The message is human readable and can be shown to the end user. A refresh
    that raises never changes the character.
    """


class FetchFailedError(RefreshError):
    """The character sheet could not be fetched, or the response was empty."""


class ParseFailedError(RefreshError):
    """The response was not a well-formed XML document."""


class RemoteAPIError(RefreshError):
    """The API answered with an error element."""

    def __init__(self, code: int, text: str):
        super().__init__(f"API Error: {text}")
        self.code = code
        self.text = text


class MissingSectionError(RefreshError):
    """A required rowset ("skills" or "implants") was absent from the response."""

    def __init__(self, section: str, character_name: str = ""):
        owner = f"{character_name}'s " if character_name else ""
        super().__init__(f"Unable to fetch {owner}{section}")
        self.section = section


class MalformedDataError(RefreshError):
    """The response was well-formed XML but did not have the expected content."""
