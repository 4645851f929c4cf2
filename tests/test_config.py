import json

import pytest

from config import Config


def test_config_from_dict(test_config):
    """Тест создания конфигурации из словаря"""
    assert test_config.bot_token == "test_token"
    assert test_config.allowed_groups == [-1001234567890]
    assert test_config.admin_ids == [123456789]
    assert test_config.admin_chat_id == "-1009876543210"
    assert test_config.defaults.whitelisted_domains == ["youtube.com"]
    assert test_config.defaults.violation_threshold == 3
    assert test_config.deletion_max_attempts == 3
    assert test_config.logging.level == "DEBUG"


def test_config_defaults():
    """Незаданные параметры получают значения по умолчанию"""
    config = Config.from_dict({"bot_token": "token"})
    assert config.admin_chat_id is None
    assert config.allowed_groups == []
    assert config.defaults.link_filter_enabled is True
    assert config.defaults.forward_filter_enabled is True
    assert config.defaults.mute_duration_seconds == 1800
    assert config.notice_lifetime_seconds == 60
    assert config.violation_ttl_seconds == 0
    assert config.timezone == "Europe/Moscow"


@pytest.mark.parametrize("overrides", [
    {"bot_token": ""},
    {"defaults": {"violation_threshold": 0}},
    {"defaults": {"mute_duration_seconds": 0}},
    {"notice_lifetime_seconds": -1},
    {"violation_ttl_seconds": -5},
    {"sweep_interval_seconds": 0},
    {"sweep_page_size": 0},
    {"deletion_max_attempts": 0},
    {"timezone": "Mars/Olympus"},
])
def test_config_validation(overrides):
    """Тест валидации конфигурации"""
    data = {"bot_token": "token"}
    data.update(overrides)
    with pytest.raises(ValueError):
        Config.from_dict(data)


def test_is_group_allowed(test_config):
    assert test_config.is_group_allowed(-1001234567890)
    assert not test_config.is_group_allowed(-100555)
    assert Config.from_dict({"bot_token": "token"}).is_group_allowed(-100555)


def test_config_from_json_file(tmp_path):
    """Тест загрузки конфигурации из файла"""
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "bot_token": "file_token",
        "admin_chat_id": -100777,
        "defaults": {"whitelisted_domains": ["Example.COM"]}
    }), encoding="utf-8")

    config = Config.from_json_file(str(path))
    assert config.bot_token == "file_token"
    assert config.admin_chat_id == "-100777"
    assert config.defaults.whitelisted_domains == ["example.com"]
