from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class Invocation:
    command_name: str
    raw_args: List[str]


def split_command_line(text: str) -> List[str]:
    """Split command text on whitespace. No quoting or escaping."""
    return str(text or "").split()


def parse_invocation(body: str, prefix: str) -> Optional[Invocation]:
    """Turn a message body into an Invocation, or None when it is not a command."""
    raw = str(body or "")
    if not prefix or not raw.startswith(prefix):
        return None

    parts = split_command_line(raw[len(prefix):])
    if not parts:
        return None

    return Invocation(command_name=parts[0], raw_args=parts[1:])
