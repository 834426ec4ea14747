"""
Access Control Expressions

Parses the --access-control setting, e.g. "UserPresenceAndBiometryAnySet"
or "DevicePasscode Or Watch", into the ordered list of terms handed to
keychain backends that support access control.

The conjunctions are recorded but never evaluated here.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from .errors import DuplicateTermError, InvalidSyntaxError


class AccessControlTerm(str, Enum):
    """Capabilities that can gate access to a keychain item."""

    USER_PRESENCE = "UserPresence"
    BIOMETRY_CURRENT_SET = "BiometryCurrentSet"
    BIOMETRY_ANY_SET = "BiometryAnySet"
    DEVICE_PASSCODE = "DevicePasscode"
    WATCH = "Watch"
    APPLICATION_PASSWORD = "ApplicationPassword"


ACCESS_CONTROL_OPTIONS = [term.value for term in AccessControlTerm]

ACCESS_CONSTRAINT_OPTIONS = [
    "",
    "AccessibleWhenUnlocked",
    "AccessibleAfterFirstUnlock",
    "AccessibleAfterFirstUnlockThisDeviceOnly",
    "AccessibleWhenPasscodeSetThisDeviceOnly",
    "AccessibleWhenUnlockedThisDeviceOnly",
]

CONJUNCTIONS = ("And", "Or")

DEFAULT_ACCESS_CONTROL = AccessControlTerm.USER_PRESENCE.value

# ASCII whitespace only; \s would also accept \v and Unicode spaces
_SPACE = r"[\t\n\f\r ]*"

_SPLIT_PATTERN = re.compile(rf"{_SPACE}(And|Or){_SPACE}")


@dataclass(frozen=True)
class AccessControlExpression:
    """A validated access control setting."""
    raw: str
    terms: Tuple[str, ...]
    conjunctions: Tuple[str, ...] = ()

    def __str__(self) -> str:
        return self.raw


def _structure_pattern(vocabulary: Sequence[str]) -> "re.Pattern":
    terms = "|".join(re.escape(term) for term in vocabulary)
    return re.compile(rf"({terms})(?:{_SPACE}(And|Or){_SPACE}({terms}))*")


def parse_access_control(raw: str, vocabulary: Optional[Sequence[str]] = None) -> AccessControlExpression:
    """
    Parse and validate an access control expression.

    Args:
        raw: The setting as the user typed it
        vocabulary: Valid term names (default: ACCESS_CONTROL_OPTIONS)

    Returns:
        The parsed AccessControlExpression

    Raises:
        InvalidSyntaxError: If the string isn't TERM (And|Or TERM)* over the vocabulary
        DuplicateTermError: If a term is used more than once
    """
    vocabulary = ACCESS_CONTROL_OPTIONS if vocabulary is None else list(vocabulary)

    if not vocabulary or _structure_pattern(vocabulary).fullmatch(raw) is None:
        raise InvalidSyntaxError(raw)

    # re.split keeps the captured conjunctions at the odd positions
    parts = _SPLIT_PATTERN.split(raw)
    terms = [part.strip() for part in parts[0::2]]
    conjunctions = parts[1::2]

    seen = set()
    for term in terms:
        if term in seen:
            raise DuplicateTermError(term, raw)
        seen.add(term)

    return AccessControlExpression(raw=raw, terms=tuple(terms), conjunctions=tuple(conjunctions))


def validate_access_control(raw: str, vocabulary: Optional[Sequence[str]] = None) -> List[str]:
    """Validate an access control expression and return its terms in order."""
    return list(parse_access_control(raw, vocabulary).terms)
