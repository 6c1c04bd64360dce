from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional

from services import commands
from services.commands import CommandContext
from services.outcomes import HandlerOutcome

CommandHandler = Callable[[CommandContext, List[str]], HandlerOutcome]


@dataclass(frozen=True)
class CommandSpec:
    name: str
    min_args: int
    max_args: int
    handler: CommandHandler
    usage: str = ""
    description: str = ""
    # When False a HandlerError is only logged, never sent to the channel.
    reply_on_error: bool = True


class CommandRegistry:
    """Static name -> CommandSpec table, filled once at startup."""

    def __init__(self, specs: Iterable[CommandSpec] = ()):
        self._specs: Dict[str, CommandSpec] = {}
        for spec in specs:
            self.register(spec)

    def register(self, spec: CommandSpec) -> None:
        if spec.name in self._specs:
            raise ValueError(f"Duplicate command name: {spec.name}")
        self._specs[spec.name] = spec

    def lookup(self, name: str) -> Optional[CommandSpec]:
        return self._specs.get(name)

    def specs(self) -> List[CommandSpec]:
        return list(self._specs.values())

    def names(self) -> List[str]:
        return list(self._specs)

    def __contains__(self, name: object) -> bool:
        return name in self._specs

    def __len__(self) -> int:
        return len(self._specs)


def _c(
    name: str,
    handler: CommandHandler,
    usage: str,
    description: str,
    *,
    min_args: int = 0,
    max_args: Optional[int] = None,
    reply_on_error: bool = True,
) -> CommandSpec:
    return CommandSpec(
        name=name,
        min_args=min_args,
        max_args=min_args if max_args is None else max_args,
        handler=handler,
        usage=usage,
        description=description,
        reply_on_error=reply_on_error,
    )


DEFAULT_COMMANDS: List[CommandSpec] = [
    _c("ping", commands.ping, "ping", "check the bot is alive"),
    _c("multiply", commands.multiply, "multiply <a> <b>", "multiply two numbers", min_args=2),
    _c("myid", commands.myid, "myid", "show your user id"),
    _c("get_app", commands.get_app, "get_app <app>", "show a Heroku app", min_args=1),
    _c("get_apps", commands.get_apps, "get_apps", "list Heroku apps"),
    _c("restart_app", commands.restart_app, "restart_app <app>", "restart a Heroku app", min_args=1),
    _c("help", commands.help_command, "help", "show this command list"),
]


def default_registry() -> CommandRegistry:
    return CommandRegistry(DEFAULT_COMMANDS)


def validate_registry(registry: CommandRegistry, no_auth_commands: Iterable[str] = ()) -> List[str]:
    issues: List[str] = []

    for spec in registry.specs():
        if not spec.name.strip() or spec.name != spec.name.strip():
            issues.append(f"Invalid command name: {spec.name!r}")
        if spec.min_args < 0 or spec.max_args < spec.min_args:
            issues.append(
                f"Invalid arity bounds on {spec.name}: min={spec.min_args} max={spec.max_args}"
            )
        if not callable(spec.handler):
            issues.append(f"Missing handler: {spec.name}")

    for name in sorted(set(no_auth_commands)):
        if name not in registry:
            issues.append(f"Exempt command is not registered: {name}")

    if not len(registry):
        issues.append("No commands registered")

    return issues
