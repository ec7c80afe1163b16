"""
Classification and ordering of PGN asset descriptors.

Files whose display name starts with a digit ("2_opening", "10_endgame")
come first, ordered by that leading number; everything else follows in
collation order of the display name. Both groups are stable.
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Tuple


_LEADING_DIGITS = re.compile(r"^[0-9]+")
_DIGITS = frozenset("0123456789")
# ICU root order of common punctuation; other symbols follow all of these.
_PUNCTUATION_ORDER = " _-,;:!?.'\"()[]{}@*/\\&#%`^+<=>|~$"


@dataclass(frozen=True)
class PgnFile:
    """One PGN file stored in the asset service."""

    url: str
    filename: str
    display_name: str

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the JSON shape returned by the gateway."""
        return {
            "url": self.url,
            "filename": self.filename,
            "displayName": self.display_name,
        }

    @classmethod
    def from_resource(cls, resource: Any) -> "PgnFile":
        """Build from an asset search resource record.

        Raises ValueError when the record lacks a public id or a URL.
        """
        if not isinstance(resource, dict):
            raise ValueError(f"resource must be an object, got {type(resource).__name__}")

        public_id = resource.get("public_id")
        if not isinstance(public_id, str) or not public_id:
            raise ValueError("resource is missing public_id")

        url = resource.get("secure_url") or resource.get("url")
        if not isinstance(url, str) or not url:
            raise ValueError(f"resource {public_id!r} is missing a URL")

        return cls(url=url, filename=public_id, display_name=display_name(public_id))


def display_name(public_id: str) -> str:
    """Last path segment of a fully-qualified asset identifier."""
    return public_id.split("/")[-1]


def is_numeric(name: str) -> bool:
    return name[:1] in _DIGITS


def leading_number(name: str) -> int:
    """Integer value of the leading digit run, 0 when there is none."""
    match = _LEADING_DIGITS.match(name)
    return int(match.group(0)) if match else 0


def _primary_weight(ch: str) -> Tuple[int, int, str]:
    index = _PUNCTUATION_ORDER.find(ch)
    if index >= 0:
        return (0, index, ch)
    if ch.isdigit():
        return (2, 0, ch)
    if ch.isalpha():
        return (3, 0, ch)
    return (1, 0, ch)


def collation_key(name: str) -> Tuple[Tuple[Tuple[int, int, str], ...], str, str, str]:
    """Locale-style sort key: accents and case only break ties.

    Punctuation and symbols sort before digits, and digits before
    letters, as in ICU root collation. Lowercase sorts before uppercase
    on a tie.
    """
    folded = name.casefold()
    base = "".join(
        ch for ch in unicodedata.normalize("NFKD", folded)
        if not unicodedata.combining(ch)
    )
    return tuple(_primary_weight(ch) for ch in base), folded, name.swapcase(), name


def parse_resources(resources: Iterable[Any]) -> List[PgnFile]:
    """Convert raw search resources into PgnFile records."""
    return [PgnFile.from_resource(resource) for resource in resources]


def classify(files: Iterable[PgnFile]) -> List[PgnFile]:
    """Order files numeric-first, then alphabetically.

    Pure function; sorting an already classified list returns the same order.
    """
    numeric: List[PgnFile] = []
    alphabetic: List[PgnFile] = []
    for pgn_file in files:
        (numeric if is_numeric(pgn_file.display_name) else alphabetic).append(pgn_file)

    numeric.sort(key=lambda f: leading_number(f.display_name))
    alphabetic.sort(key=lambda f: collation_key(f.display_name))
    return numeric + alphabetic
