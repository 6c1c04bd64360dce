from unittest.mock import patch

import pytest

from dynobot import app
from dynobot.config import BotConfig, ConfigError
from services.heroku import HerokuClient


def test_build_dispatcher_wires_heroku_client():
    cfg = BotConfig(discord_token="t", heroku_api_key="key", heroku_timeout_seconds=3)
    dispatcher = app.build_dispatcher(cfg)
    assert isinstance(dispatcher.heroku, HerokuClient)
    assert dispatcher.heroku.timeout_seconds == 3
    assert dispatcher.policy.no_auth_commands == cfg.no_auth_commands


def test_build_dispatcher_without_heroku_key():
    dispatcher = app.build_dispatcher(BotConfig(discord_token="t"))
    assert dispatcher.heroku is None


def test_build_dispatcher_rejects_unknown_exempt_command():
    cfg = BotConfig(discord_token="t", no_auth_commands=frozenset({"ping", "shutdown"}))
    with pytest.raises(ConfigError, match="shutdown"):
        app.build_dispatcher(cfg)


@patch("dynobot.app.DiscordGateway")
@patch("dynobot.app.configure_logging")
def test_main_aborts_on_config_error(mock_logging, mock_gateway):
    with pytest.raises(SystemExit) as exc_info:
        app.main({"discord": {"token": ""}})
    assert exc_info.value.code == 1
    mock_gateway.assert_not_called()


@patch("dynobot.app.DiscordGateway")
@patch("dynobot.app.configure_logging")
def test_main_starts_gateway(mock_logging, mock_gateway):
    app.main({"discord": {"token": "abc"}})
    token, dispatcher = mock_gateway.call_args.args
    assert token == "abc"
    mock_gateway.return_value.run.assert_called_once_with()
