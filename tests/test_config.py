import pytest

from jobs.config import AccessorConfig, build_accessor


def test_from_env_reads_overrides():
    config = AccessorConfig.from_env(
        {
            "ACTION_CORE_HOST": "collector.internal",
            "ACTION_CORE_PORT": "9090",
            "ACTION_CORE_API_VERSION": "2.0",
            "ACTION_CORE_TIMEOUT": "12.5",
        }
    )

    assert config == AccessorConfig(
        host="collector.internal",
        port=9090,
        api_version="2.0",
        timeout=12.5,
        user_agent="action-access/1.0",
    )


def test_from_env_defaults():
    assert AccessorConfig.from_env({}) == AccessorConfig()


@pytest.mark.parametrize(
    "environ",
    [
        {"ACTION_CORE_PORT": "http"},
        {"ACTION_CORE_TIMEOUT": "soon"},
        {"ACTION_CORE_TIMEOUT": "0"},
    ],
)
def test_from_env_rejects_invalid_numbers(environ):
    with pytest.raises(ValueError):
        AccessorConfig.from_env(environ)


def test_from_env_loads_process_environment(monkeypatch):
    monkeypatch.setenv("ACTION_CORE_HOST", "env-host")
    monkeypatch.setenv("ACTION_CORE_PORT", "7000")

    config = AccessorConfig.from_env()

    assert config.host == "env-host"
    assert config.port == 7000


def test_build_accessor_uses_config():
    accessor = build_accessor(AccessorConfig(host="collector.internal", port=9090, api_version="2.0"))
    try:
        assert accessor.url == "http://collector.internal:9090/rest/2.0/json?path="
        assert accessor.upload_url == "http://collector.internal:9090/rest/2.0"
        assert accessor.timeout == 300.0
    finally:
        accessor.close()
