from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, List, Optional, Union

from dynobot.config import BotConfig
from services.heroku import HerokuClient, HerokuError
from services.outcomes import HandlerError, HandlerOutcome, Success

if TYPE_CHECKING:
    from services.commands_registry import CommandRegistry

logger = logging.getLogger(__name__)

ReplySender = Callable[[Any, str], bool]
Number = Union[int, float]

PONG = "Pong!"


@dataclass(frozen=True)
class CommandContext:
    sender_id: str
    channel_id: Any
    config: BotConfig
    send: ReplySender
    heroku: Optional[HerokuClient] = None
    registry: Optional["CommandRegistry"] = None

    def reply(self, text: str) -> bool:
        return self.send(self.channel_id, text)


def ping(ctx: CommandContext, args: List[str]) -> HandlerOutcome:
    return Success(PONG)


def myid(ctx: CommandContext, args: List[str]) -> HandlerOutcome:
    return Success(str(ctx.sender_id))


def _parse_number(token: str, precision: str) -> Number:
    try:
        return int(token)
    except ValueError:
        if precision == "integer":
            raise
    value = float(token)
    if not math.isfinite(value):
        raise ValueError(f"non-finite value {token!r}")
    return value


def multiply(ctx: CommandContext, args: List[str]) -> HandlerOutcome:
    precision = ctx.config.multiply_precision
    values: List[Number] = []
    for position, token in enumerate(args, start=1):
        try:
            values.append(_parse_number(token, precision))
        except ValueError:
            kind = "an integer" if precision == "integer" else "a number"
            return HandlerError(f"Argument {position} ({token!r}) is not {kind}.")

    try:
        product: Number = values[0] * values[1]
    except OverflowError:
        return HandlerError("Result is too large.")
    if isinstance(product, float) and not math.isfinite(product):
        return HandlerError("Result is too large.")
    try:
        text = str(product)
    except ValueError:
        # int to str conversion is capped at sys.get_int_max_str_digits().
        return HandlerError("Result is too large.")
    return Success(text)


def _heroku(ctx: CommandContext) -> HerokuClient:
    if ctx.heroku is None:
        raise HerokuError("Heroku is not configured (missing heroku.api_key).")
    return ctx.heroku


def get_app(ctx: CommandContext, args: List[str]) -> HandlerOutcome:
    name = args[0]
    try:
        app = _heroku(ctx).get_app(name)
    except HerokuError as exc:
        return HandlerError(f"Could not fetch app {name}: {exc}")
    return Success(f"{app.name}: {app.state}")


def get_apps(ctx: CommandContext, args: List[str]) -> HandlerOutcome:
    try:
        apps = _heroku(ctx).list_apps()
    except HerokuError as exc:
        return HandlerError(f"Could not list apps: {exc}")
    if not apps:
        return Success("No apps found.")
    return Success("\n".join(app.name for app in apps))


def restart_app(ctx: CommandContext, args: List[str]) -> HandlerOutcome:
    name = args[0]
    try:
        _heroku(ctx).restart_app(name)
    except HerokuError as exc:
        return HandlerError(f"Could not restart app {name}: {exc}")
    logger.info("Restarted Heroku app %s on behalf of %s", name, ctx.sender_id)
    return Success(f"Restarted {name}.")


def help_command(ctx: CommandContext, args: List[str]) -> HandlerOutcome:
    if ctx.registry is None:
        return HandlerError("No command registry available.")

    lines = ["Commands:"]
    for spec in ctx.registry.specs():
        line = f"{ctx.config.prefix}{spec.usage} — {spec.description}"
        if spec.name not in ctx.config.no_auth_commands:
            line += " (authorized users)"
        lines.append(line)
    return Success("\n".join(lines))
