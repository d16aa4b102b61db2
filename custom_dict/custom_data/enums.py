# Extracted from the municipality processor so sources and tests share one table
import enum
from typing import Dict, List, Optional


class MatchAction(enum.Enum):
    """What the commit step does with a candidate entry."""

    INSERT = "insert"  # New entry, consumes a sequence id
    UPDATE = "update"  # New sense on an existing entry
    UPDATE_GLOSS = "update_gloss"  # Rewrite one gloss text in place
    SKIP = "skip"  # Already present verbatim

    def __str__(self):
        return self.value


class IfExists(enum.Enum):
    """Policy for load_entry when the sequence id is already taken."""

    SKIP = "skip"
    OVERWRITE = "overwrite"
    ERROR = "error"

    def __str__(self):
        return self.value

    @classmethod
    def from_string(cls, value: str) -> "IfExists":
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(f"Unknown if-exists policy: {value}")


# Part-of-speech tag given to every generated municipality sense
POS_NOUN = "n"

# Unit-type character -> phonetic suffixes, tried in declared order
UNIT_TYPE_SUFFIXES: Dict[str, List[str]] = {
    "都": ["と"],
    "道": ["どう"],
    "府": ["ふ"],
    "県": ["けん"],
    "市": ["し"],
    "区": ["く"],
    "町": ["ちょう", "まち"],
    "村": ["むら", "そん"],
}

UNIT_TYPE_DESCRIPTIONS: Dict[str, Optional[str]] = {
    "都": "Metropolis",
    "道": None,  # Hokkaido is glossed by name alone
    "府": "Prefecture",
    "県": "Prefecture",
    "市": "City",
    "区": "Ward",
    "町": "Town",
    "村": "Village",
}

CIRCUIT_TYPE = "道"
CITY_TYPE = "市"
WARD_TYPE = "区"

# No separate short-form headword is generated for these
SHORT_FORM_EXCLUDED_TYPES = frozenset({WARD_TYPE, CIRCUIT_TYPE})
