from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import FrozenSet

from dynobot.config import BotConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthorizationPolicy:
    no_auth_commands: FrozenSet[str] = field(default_factory=frozenset)
    authorized_senders: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def from_config(cls, config: BotConfig) -> "AuthorizationPolicy":
        return cls(
            no_auth_commands=frozenset(config.no_auth_commands),
            authorized_senders=frozenset(config.authorized_users),
        )


def is_authorized(sender_id: str, policy: AuthorizationPolicy) -> bool:
    return str(sender_id) in policy.authorized_senders


def check_authorization(command_name: str, sender_id: str, policy: AuthorizationPolicy) -> bool:
    """Pre-dispatch gate. Exempt commands pass without consulting the allowlist."""
    if command_name in policy.no_auth_commands:
        return True
    if is_authorized(sender_id, policy):
        return True

    if not policy.authorized_senders:
        logger.warning("No authorized_users configured; only exempt commands can run.")
    logger.warning("User %s is not authorized to run command %s", sender_id, command_name)
    return False
