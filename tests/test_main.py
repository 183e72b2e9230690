"""
Tests for application wiring and configuration loading.
"""
import pytest

from gagwatch.config.config_manager import ConfigManager
from gagwatch.main import build_application, load_configuration


@pytest.fixture
def config_env(monkeypatch, tmp_path):
    monkeypatch.setenv('CONFIG_DIR', str(tmp_path))
    monkeypatch.setenv('ENVIRONMENT', 'testing')
    monkeypatch.delenv('CONFIG_FILE', raising=False)
    monkeypatch.delenv('DISCORD_TOKEN', raising=False)
    monkeypatch.delenv('NOTIFICATION_SEND_TIMEOUT', raising=False)
    monkeypatch.delenv('NOTIFICATION_TIMEZONE', raising=False)
    return tmp_path


def test_load_configuration_layers_files(config_env, monkeypatch):
    (config_env / "config.yaml").write_text(
        "discord:\n  token: file-token\nfeed:\n  reconnect_delay: 4\n", encoding='utf-8'
    )
    (config_env / "config.testing.yaml").write_text("feed:\n  reconnect_delay: 6\n", encoding='utf-8')
    monkeypatch.setenv('HEALTH_CHECK_PORT', '9090')

    manager = ConfigManager()
    assert load_configuration(manager) is True

    assert manager.get('discord.token') == 'file-token'
    assert manager.get('feed.reconnect_delay') == 6
    assert manager.get('health_check.port') == 9090


def test_load_configuration_fails_without_token(config_env):
    assert load_configuration(ConfigManager()) is False


@pytest.mark.asyncio
async def test_build_application_wires_components(config_manager, temp_db):
    app = build_application(config_manager, temp_db)

    assert app.matching_engine.store is app.snapshot_store
    assert app.feed_client.store is app.snapshot_store
    assert app.stock_query.store is app.snapshot_store
    assert app.dispatcher.messenger is app.discord_client
    assert app.scheduler.engine is app.matching_engine
    assert app.command_handler.is_admin("999")
    assert app.command_handler.interface_url == "https://example.com/register"
    assert app.command_handler.throttle is app.preference_service.throttle
    assert app.discord_client._command_handler is app.command_handler
    assert app.matching_engine.cooldown_hours == 24
