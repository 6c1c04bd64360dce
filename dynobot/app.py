from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from dynobot.config import BotConfig, ConfigError, build_bot_config, load_config
from dynobot.gateway import DiscordGateway
from dynobot.logging import configure_logging
from services.authorization import AuthorizationPolicy
from services.commands_registry import default_registry, validate_registry
from services.dispatcher import Dispatcher
from services.heroku import HerokuClient

logger = logging.getLogger(__name__)


def build_dispatcher(bot_config: BotConfig) -> Dispatcher:
    """Wire registry, policy and Heroku client; refuse to start on config defects."""
    registry = default_registry()
    issues = validate_registry(registry, bot_config.no_auth_commands)
    if issues:
        raise ConfigError("; ".join(issues))

    heroku: Optional[HerokuClient] = None
    if bot_config.heroku_api_key:
        heroku = HerokuClient(
            bot_config.heroku_api_key,
            base_url=bot_config.heroku_base_url,
            timeout_seconds=bot_config.heroku_timeout_seconds,
        )
    else:
        logger.warning("heroku.api_key not set; app commands will report an error.")

    return Dispatcher(
        registry,
        AuthorizationPolicy.from_config(bot_config),
        bot_config,
        heroku=heroku,
    )


def main(config: Optional[Dict[str, Any]] = None) -> None:
    config = config or load_config()
    configure_logging(config)
    try:
        bot_config = build_bot_config(config)
        dispatcher = build_dispatcher(bot_config)
    except ConfigError as exc:
        logger.error("Invalid configuration: %s", exc)
        raise SystemExit(1) from exc

    DiscordGateway(bot_config.discord_token, dispatcher).run()


if __name__ == "__main__":
    main()
