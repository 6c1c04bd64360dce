from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, Optional

import yaml
from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
DEFAULT_CONFIG_PATH = BASE_DIR / "config.yaml"

DEFAULT_PREFIX = "~"
DEFAULT_NO_AUTH_COMMANDS = ("ping", "myid", "help")
DEFAULT_HEROKU_URL = "https://api.heroku.com"
PRECISIONS = ("float", "integer")


class ConfigError(Exception):
    """Raised for configuration defects that must abort startup."""


@dataclass(frozen=True)
class BotConfig:
    discord_token: str
    prefix: str = DEFAULT_PREFIX
    authorized_users: FrozenSet[str] = field(default_factory=frozenset)
    no_auth_commands: FrozenSet[str] = field(
        default_factory=lambda: frozenset(DEFAULT_NO_AUTH_COMMANDS)
    )
    heroku_api_key: str = ""
    heroku_base_url: str = DEFAULT_HEROKU_URL
    heroku_timeout_seconds: float = 10.0
    multiply_precision: str = "float"


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _split_ids(raw: str) -> list[str]:
    return [token.strip() for token in raw.split(",") if token.strip()]


def _env_overrides() -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    token = os.getenv("DISCORD_TOKEN", "").strip()
    if token:
        overrides.setdefault("discord", {})["token"] = token

    prefix = os.getenv("DYNOBOT_PREFIX")
    if prefix:
        overrides.setdefault("discord", {})["prefix"] = prefix

    allowed = os.getenv("AUTHORIZED_USERS", "").strip()
    if allowed:
        ids = _split_ids(allowed)
        if ids:
            overrides.setdefault("authorization", {})["authorized_users"] = ids

    api_key = os.getenv("HEROKU_API_KEY", "").strip()
    if api_key:
        overrides.setdefault("heroku", {})["api_key"] = api_key

    return overrides


def resolve_path(path_value: str, *, base_dir: Optional[Path] = None) -> Path:
    candidate = Path(path_value)
    if not candidate.is_absolute():
        candidate = (base_dir or BASE_DIR) / candidate
    return candidate.resolve()


@lru_cache(maxsize=1)
def load_config() -> Dict[str, Any]:
    load_dotenv(dotenv_path=BASE_DIR / ".env")

    config_path = os.getenv("DYNOBOT_CONFIG")
    path = resolve_path(config_path, base_dir=Path.cwd()) if config_path else DEFAULT_CONFIG_PATH

    data: Dict[str, Any] = {}
    if path.exists():
        loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
        if isinstance(loaded, dict):
            data = loaded

    return _deep_merge(data, _env_overrides())


def reload_config() -> Dict[str, Any]:
    load_config.cache_clear()
    return load_config()


def get_log_path(config: Optional[Dict[str, Any]] = None) -> Path:
    cfg = config or load_config()
    log_path = str(cfg.get("paths", {}).get("log_file", "logs/dynobot.log"))
    return resolve_path(log_path)


def _section(cfg: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = cfg.get(name, {})
    return value if isinstance(value, dict) else {}


def _string_set(values: Optional[Iterable[Any]]) -> FrozenSet[str]:
    if values is None:
        return frozenset()
    if isinstance(values, (str, int)):
        values = _split_ids(str(values))
    return frozenset(str(v).strip() for v in values if str(v).strip())


def build_bot_config(config: Optional[Dict[str, Any]] = None) -> BotConfig:
    """Validate the raw config mapping and freeze it into a BotConfig.

    Raises ConfigError for anything that should stop the bot from starting.
    """
    cfg = config if config is not None else load_config()
    discord_cfg = _section(cfg, "discord")
    auth_cfg = _section(cfg, "authorization")
    heroku_cfg = _section(cfg, "heroku")
    math_cfg = _section(cfg, "math")

    token = str(discord_cfg.get("token") or "").strip()
    if not token:
        raise ConfigError("Discord token is missing (discord.token or DISCORD_TOKEN).")
    if any(ch.isspace() for ch in token):
        raise ConfigError("Discord token is malformed: it must not contain whitespace.")

    prefix = str(discord_cfg.get("prefix") or DEFAULT_PREFIX)
    if prefix.strip() != prefix or not prefix:
        raise ConfigError(f"Command prefix {prefix!r} must be non-empty without whitespace.")

    no_auth_raw = auth_cfg.get("no_auth_commands")
    no_auth = _string_set(no_auth_raw) if no_auth_raw is not None else frozenset(
        DEFAULT_NO_AUTH_COMMANDS
    )

    precision = str(math_cfg.get("precision") or "float").strip().lower()
    if precision not in PRECISIONS:
        raise ConfigError(f"math.precision must be one of {', '.join(PRECISIONS)}, got {precision!r}.")

    try:
        timeout = float(heroku_cfg.get("timeout_seconds", 10))
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"heroku.timeout_seconds is not a number: {exc}") from exc
    if timeout <= 0:
        raise ConfigError("heroku.timeout_seconds must be positive.")

    return BotConfig(
        discord_token=token,
        prefix=prefix,
        authorized_users=_string_set(auth_cfg.get("authorized_users")),
        no_auth_commands=no_auth,
        heroku_api_key=str(heroku_cfg.get("api_key") or "").strip(),
        heroku_base_url=str(heroku_cfg.get("base_url") or DEFAULT_HEROKU_URL).rstrip("/"),
        heroku_timeout_seconds=timeout,
        multiply_precision=precision,
    )
