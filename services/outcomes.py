"""Dispatch outcomes and their translation into user-facing replies."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class ArityKind(Enum):
    TOO_FEW = "too_few"
    TOO_MANY = "too_many"


@dataclass(frozen=True)
class Ignored:
    """Not a command, or a command name nobody registered."""

    reason: str = ""


@dataclass(frozen=True)
class Success:
    text: str


@dataclass(frozen=True)
class HandlerError:
    message: str


@dataclass(frozen=True)
class ArityError:
    kind: ArityKind
    expected: int
    given: int


@dataclass(frozen=True)
class Unauthorized:
    sender: str
    command: str


@dataclass(frozen=True)
class UnhandledError:
    error: str


Outcome = Union[Ignored, Success, HandlerError, ArityError, Unauthorized, UnhandledError]
HandlerOutcome = Union[Success, HandlerError]


def reply_text(outcome: Outcome) -> Optional[str]:
    """Map an outcome to the reply sent back to the channel, or None for no reply."""
    if isinstance(outcome, Success):
        return outcome.text
    if isinstance(outcome, HandlerError):
        return outcome.message
    if isinstance(outcome, ArityError):
        if outcome.kind is ArityKind.TOO_FEW:
            return f"Need {outcome.expected} arguments, but only got {outcome.given}."
        return f"Max arguments allowed is {outcome.expected}, but got {outcome.given}."
    if isinstance(outcome, Unauthorized):
        return f"User {outcome.sender} is not authorized to run this command"
    return None
