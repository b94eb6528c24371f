import pytest

from onekey_license_server.config import Settings


@pytest.fixture
def env(monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", "https://store.example.test/")
    monkeypatch.setenv("SUPABASE_KEY", "k")
    monkeypatch.setenv("ADMIN_KEY", "a")
    for name in ("STORE_TIMEOUT", "KEY_TTL_HOURS", "KEY_LENGTH", "RATELIMIT_ENABLED", "TRUST_PROXY", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(env):
    s = Settings.from_env()
    assert s.rest_base == "https://store.example.test/rest/v1"
    assert s.store_timeout == 5.0
    assert s.key_ttl_hours == 24
    assert s.key_length == 16
    assert s.rate_limit_enabled is True
    assert s.trust_proxy is False


def test_overrides(env):
    env.setenv("STORE_TIMEOUT", "2.5")
    env.setenv("RATELIMIT_ENABLED", "false")
    env.setenv("TRUST_PROXY", "1")
    env.setenv("LOG_LEVEL", "debug")

    s = Settings.from_env()
    assert s.store_timeout == 2.5
    assert s.rate_limit_enabled is False
    assert s.trust_proxy is True
    assert s.log_level == "DEBUG"


@pytest.mark.parametrize("name", ["SUPABASE_URL", "SUPABASE_KEY", "ADMIN_KEY"])
def test_missing_required(env, name):
    env.delenv(name)
    with pytest.raises(RuntimeError, match=name):
        Settings.from_env()


def test_settings_are_immutable(env):
    s = Settings.from_env()
    with pytest.raises(AttributeError):
        s.admin_key = "other"


def test_short_key_length_is_refused_at_startup(env):
    env.setenv("KEY_LENGTH", "8")
    with pytest.raises(RuntimeError, match="KEY_LENGTH"):
        Settings.from_env()


def test_short_key_length_is_refused_when_built_directly():
    with pytest.raises(RuntimeError, match="KEY_LENGTH"):
        Settings(store_url="https://s", store_key="k", admin_key="a", key_length=8)
