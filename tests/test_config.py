import pytest

from medrisk.config import DEFAULT_BASE_URL, ClientConfig

_ENV_VARS = ["DEMO_MED_API_KEY", "DEMO_MED_BASE_URL", "DEMO_MED_PAGE_LIMIT", "DEMO_MED_MAX_RETRIES", "DEMO_MED_TIMEOUT"]


@pytest.fixture
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults_without_environment(clean_env):
    config = ClientConfig.from_env()
    assert config.api_key == ""
    assert config.base_url == DEFAULT_BASE_URL
    assert config.page_limit == 20
    assert config.max_retries == 5
    assert config.timeout == 30.0


def test_environment_overrides(clean_env):
    clean_env.setenv("DEMO_MED_API_KEY", "secret")
    clean_env.setenv("DEMO_MED_BASE_URL", "http://localhost:8000/api/")
    clean_env.setenv("DEMO_MED_PAGE_LIMIT", "5")
    clean_env.setenv("DEMO_MED_MAX_RETRIES", "2")
    clean_env.setenv("DEMO_MED_TIMEOUT", "2.5")

    config = ClientConfig.from_env()
    assert config.api_key == "secret"
    assert config.base_url == "http://localhost:8000/api"
    assert config.patients_url == "http://localhost:8000/api/patients"
    assert config.submit_url == "http://localhost:8000/api/submit-assessment"
    assert config.page_limit == 5
    assert config.max_retries == 2
    assert config.timeout == 2.5


def test_non_numeric_environment_value_raises(clean_env):
    clean_env.setenv("DEMO_MED_PAGE_LIMIT", "twenty")
    with pytest.raises(ValueError):
        ClientConfig.from_env()


@pytest.mark.parametrize("kwargs", [{"page_limit": 0}, {"max_retries": -1}, {"timeout": 0}])
def test_out_of_range_values_raise(kwargs):
    with pytest.raises(ValueError):
        ClientConfig(**kwargs)
