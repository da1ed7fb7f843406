"""Tests for Spock configuration system."""

import json

import pytest

from sifter.core.spock.spock import DEFAULTS, ConfigManager, Spock


@pytest.fixture
def write_config(tmp_path):
    """Write a JSON config file and return its path."""

    def write(data) -> str:
        path = tmp_path / "sifter.json"
        path.write_text(data if isinstance(data, str) else json.dumps(data), encoding="utf-8")
        return str(path)

    return write


class TestSpockBasics:
    """Test basic Spock functionality."""

    def test_spock_initialization(self):
        """Spock can be created with and without a config path."""
        spock = ConfigManager()
        assert not spock.is_loaded
        assert spock.config_path is None

        spock_with_path = ConfigManager(config_path="/path/to/config.json")
        assert spock_with_path.config_path == "/path/to/config.json"
        assert not spock_with_path.is_loaded

    def test_defaults(self):
        """Without any source the documented defaults apply."""
        spock = Spock()
        spock.load()

        assert spock.get_sifter_config() == DEFAULTS
        assert spock.get_index_config("products") == {}

    def test_getters_load_lazily(self):
        spock = Spock()

        assert spock.get_sifter_config("scroll_timeout") == "1m"
        assert spock.is_loaded


class TestSpockSources:
    """Test JSON, dict and environment sources and their priority."""

    def test_load_valid_json(self, write_config):
        config_path = write_config(
            {
                "sifter": {"base_url": "http://search:9200", "version": "6.8.0"},
                "indices": {"products": {"bulk_batch_size": 250}},
            }
        )

        spock = Spock(config_path=config_path)
        spock.load()

        assert spock.get_sifter_config("base_url") == "http://search:9200"
        assert spock.get_sifter_config("version") == "6.8.0"
        assert spock.get_index_config("products", "bulk_batch_size") == 250

    def test_load_missing_file(self):
        """A missing config file only warns."""
        spock = Spock(config_path="/nonexistent/config.json")
        spock.load()

        assert spock.is_loaded
        assert spock.get_sifter_config("base_url") == DEFAULTS["base_url"]

    def test_load_invalid_json(self, write_config):
        spock = Spock(config_path=write_config("{ invalid json }"))

        with pytest.raises(ValueError, match="Invalid JSON"):
            spock.load()

    @pytest.mark.parametrize(
        "config",
        [["not", "an", "object"], {"sifter": "nope"}, {"indices": {"products": 5}}],
    )
    def test_reject_malformed_sections(self, config):
        with pytest.raises(ValueError):
            Spock().load(config=config)

    def test_load_from_env(self, monkeypatch):
        monkeypatch.setenv("SIFTER__SIFTER__BASE_URL", "http://env:9200")
        monkeypatch.setenv("SIFTER__SIFTER__BULK_BATCH_SIZE", "500")
        monkeypatch.setenv("SIFTER__SIFTER__HEADERS__X_TENANT", "acme")
        monkeypatch.setenv("SIFTER__INDICES__PRODUCTS__SCROLL_TIMEOUT", "5m")

        spock = Spock()
        spock.load()

        assert spock.get_sifter_config("base_url") == "http://env:9200"
        assert spock.get_sifter_config("bulk_batch_size") == 500  # parsed as int
        assert spock.get_sifter_config("headers") == {"x_tenant": "acme"}
        assert spock.get_index_config("products", "scroll_timeout") == "5m"

    def test_ignores_malformed_env(self, monkeypatch):
        monkeypatch.setenv("SIFTER__NOPE", "1")
        monkeypatch.setenv("SIFTER__PLUGINS__X__Y", "1")
        monkeypatch.setenv("SIFTER__INDICES__PRODUCTS", "1")

        spock = Spock()
        spock.load()

        assert "plugins" not in spock.get_all_config()
        assert spock.get_index_config("products") == {}

    def test_priority(self, write_config, monkeypatch):
        """Environment beats JSON, which beats the config dict."""
        config_path = write_config(
            {"sifter": {"base_url": "http://json:9200", "version": "6.0.0"}}
        )
        monkeypatch.setenv("SIFTER__SIFTER__BASE_URL", "http://env:9200")

        spock = Spock(config_path=config_path)
        spock.load(
            config={"sifter": {"base_url": "http://dict:9200", "version": "5.0.0", "negation": "must_not"}}
        )

        assert spock.get_sifter_config("base_url") == "http://env:9200"
        assert spock.get_sifter_config("version") == "6.0.0"
        assert spock.get_sifter_config("negation") == "must_not"


class TestSpockAccessors:
    """Test getters, setters and reload."""

    def test_index_config_falls_back_to_core(self):
        spock = Spock()
        spock.load(config={"sifter": {"scroll_timeout": "2m"}, "indices": {"logs": {"scroll_timeout": "10m"}}})

        assert spock.get_index_config("logs", "scroll_timeout") == "10m"
        assert spock.get_index_config("products", "scroll_timeout") == "2m"
        assert spock.get_index_config("products", "missing", default="x") == "x"

    def test_set_config_at_runtime(self):
        spock = Spock()
        spock.load()

        spock.set_sifter_config("version", "2.4.0")
        spock.set_index_config("products", "bulk_batch_size", 10)

        assert spock.get_sifter_config("version") == "2.4.0"
        assert spock.get_index_config("products", "bulk_batch_size") == 10

    def test_snapshots_are_copies(self):
        spock = Spock()
        spock.load()

        spock.get_all_config()["sifter"]["base_url"] = "changed"
        spock.get_sifter_config()["version"] = "changed"

        assert spock.get_sifter_config("base_url") == DEFAULTS["base_url"]
        assert spock.get_sifter_config("version") == DEFAULTS["version"]

    def test_reload_picks_up_env_changes(self, monkeypatch):
        spock = Spock()
        spock.load()

        monkeypatch.setenv("SIFTER__SIFTER__VERSION", '"1.7.5"')
        spock.reload()

        assert spock.get_sifter_config("version") == "1.7.5"
