import pytest

from services.commands_registry import (
    CommandRegistry,
    CommandSpec,
    default_registry,
    validate_registry,
)
from services.outcomes import Success


def _noop(ctx, args):
    return Success("ok")


def test_default_registry_validates_with_default_exemptions():
    registry = default_registry()
    assert validate_registry(registry, ["ping", "myid", "help"]) == []


def test_default_registry_has_expected_commands():
    names = set(default_registry().names())
    assert {"ping", "multiply", "myid", "get_app", "get_apps", "restart_app"} <= names


def test_lookup_is_exact_and_case_sensitive():
    registry = default_registry()
    assert registry.lookup("ping") is not None
    assert registry.lookup("Ping") is None
    assert registry.lookup("pin") is None


def test_arity_bounds():
    registry = default_registry()
    multiply = registry.lookup("multiply")
    assert (multiply.min_args, multiply.max_args) == (2, 2)
    get_apps = registry.lookup("get_apps")
    assert (get_apps.min_args, get_apps.max_args) == (0, 0)


def test_register_rejects_duplicates():
    registry = CommandRegistry([CommandSpec("a", 0, 0, _noop)])
    with pytest.raises(ValueError):
        registry.register(CommandSpec("a", 1, 1, _noop))


def test_validate_registry_flags_unknown_exempt_command():
    issues = validate_registry(default_registry(), ["ping", "shutdown"])
    assert issues == ["Exempt command is not registered: shutdown"]


def test_validate_registry_flags_bad_arity():
    registry = CommandRegistry([CommandSpec("bad", 2, 1, _noop)])
    issues = validate_registry(registry)
    assert any("Invalid arity bounds on bad" in issue for issue in issues)


def test_validate_registry_flags_empty_registry():
    assert validate_registry(CommandRegistry()) == ["No commands registered"]
