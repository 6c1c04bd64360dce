"""Message-command pipeline: parse, check arity, authorize, run, reply.

One call to ``Dispatcher.dispatch`` handles one inbound message from start
to finish and returns the outcome. Nothing it does is shared between
invocations except the read-only registry, policy and config, so the
gateway may call it from several threads at once.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from dynobot.config import BotConfig
from dynobot.logging import correlation_context
from services.argparse_simple import parse_invocation
from services.authorization import AuthorizationPolicy, check_authorization
from services.commands import CommandContext, ReplySender
from services.commands_registry import CommandRegistry, CommandSpec
from services.heroku import HerokuClient
from services.outcomes import (
    ArityError,
    ArityKind,
    HandlerError,
    Ignored,
    Outcome,
    Success,
    Unauthorized,
    UnhandledError,
    reply_text,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InboundMessage:
    body: str
    author_id: str
    channel_id: Any
    # How the sender is named in replies (a mention on Discord); falls back to the id.
    author_label: str = ""


def check_arity(spec: CommandSpec, args: List[str]) -> Optional[ArityError]:
    given = len(args)
    if given < spec.min_args:
        return ArityError(kind=ArityKind.TOO_FEW, expected=spec.min_args, given=given)
    if given > spec.max_args:
        return ArityError(kind=ArityKind.TOO_MANY, expected=spec.max_args, given=given)
    return None


class Dispatcher:
    def __init__(
        self,
        registry: CommandRegistry,
        policy: AuthorizationPolicy,
        config: BotConfig,
        *,
        heroku: Optional[HerokuClient] = None,
    ):
        self.registry = registry
        self.policy = policy
        self.config = config
        self.heroku = heroku

    def dispatch(self, message: InboundMessage, send: ReplySender) -> Outcome:
        with correlation_context():
            try:
                outcome, should_reply = self._run(message, send)
            except Exception as exc:
                logger.exception("Unhandled dispatch error: %s", exc)
                return UnhandledError(error=f"{type(exc).__name__}: {exc}")
            if should_reply:
                self._reply(message, send, outcome)
            return outcome

    def _run(self, message: InboundMessage, send: ReplySender) -> Tuple[Outcome, bool]:
        invocation = parse_invocation(message.body, self.config.prefix)
        if invocation is None:
            return Ignored("not a command"), False

        spec = self.registry.lookup(invocation.command_name)
        if spec is None:
            logger.debug("Ignoring unknown command %r", invocation.command_name)
            return Ignored("unknown command"), False

        arity_error = check_arity(spec, invocation.raw_args)
        if arity_error is not None:
            logger.info(
                "Rejected %s: %s (expected %s, got %s)",
                spec.name,
                arity_error.kind.value,
                arity_error.expected,
                arity_error.given,
            )
            return arity_error, True

        sender = str(message.author_id)
        if not check_authorization(spec.name, sender, self.policy):
            return Unauthorized(sender=message.author_label or sender, command=spec.name), True

        logger.info("Running command %s", spec.name)
        ctx = CommandContext(
            sender_id=sender,
            channel_id=message.channel_id,
            config=self.config,
            send=send,
            heroku=self.heroku,
            registry=self.registry,
        )
        outcome = spec.handler(ctx, list(invocation.raw_args))

        if isinstance(outcome, HandlerError):
            logger.warning("Command %s failed: %s", spec.name, outcome.message)
            return outcome, spec.reply_on_error
        if not isinstance(outcome, Success):
            raise TypeError(f"Handler for {spec.name} returned {type(outcome).__name__}")
        return outcome, True

    def _reply(self, message: InboundMessage, send: ReplySender, outcome: Outcome) -> None:
        text = reply_text(outcome)
        if text is None:
            return
        try:
            sent = send(message.channel_id, text)
        except Exception as exc:
            logger.warning("Reply to channel %s raised: %s", message.channel_id, exc)
            return
        if not sent:
            logger.warning("Reply to channel %s was not delivered", message.channel_id)
