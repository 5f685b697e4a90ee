import pytest
from pydantic import ValidationError

from route_scribe.config import DocsConfig, load_config


class TestDocsConfig:
    def test_defaults(self):
        config = DocsConfig()
        assert config.title == "API Documentation"
        assert config.version == "1.0.0"
        assert config.route == "/swagger-ui"
        assert config.spec_route == "/swagger-ui/openapi.json"
        assert config.extensions == [".py"]
        assert "APIRouter" in config.router_factories
        assert config.info.contact is None

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("ROUTE_SCRIBE_TITLE", "From env")
        monkeypatch.setenv("ROUTE_SCRIBE_EXCLUDE_PATHS", '["/internal"]')
        monkeypatch.setenv("ROUTE_SCRIBE_INFO__VERSION", "3.0.0")
        config = DocsConfig()
        assert config.title == "From env"
        assert config.exclude_paths == ["/internal"]
        assert config.info.version == "3.0.0"


class TestLoadConfig:
    def test_file_values(self, tmp_path):
        f = tmp_path / "docs.yaml"
        f.write_text(
            "title: Shop API\n"
            "route: /docs\n"
            "info:\n"
            "  license:\n"
            "    name: MIT\n"
        )
        config = load_config(f)
        assert config.title == "Shop API"
        assert config.spec_route == "/docs/openapi.json"
        assert config.info.license.name == "MIT"

    def test_precedence(self, tmp_path, monkeypatch):
        monkeypatch.setenv("ROUTE_SCRIBE_TITLE", "From env")
        monkeypatch.setenv("ROUTE_SCRIBE_VERSION", "9.9.9")
        f = tmp_path / "docs.yaml"
        f.write_text("title: From file\ndescription: File description\n")

        config = load_config(f, title="From override", description=None)
        assert config.title == "From override"
        assert config.description == "File description"
        assert config.version == "9.9.9"

    def test_no_file(self):
        assert load_config(None, version="2.0.0").version == "2.0.0"

    def test_non_mapping_file(self, tmp_path):
        f = tmp_path / "docs.yaml"
        f.write_text("- a\n- b\n")
        with pytest.raises(ValueError):
            load_config(f)

    def test_invalid_value(self, tmp_path):
        f = tmp_path / "docs.yaml"
        f.write_text("exclude_paths: 3\n")
        with pytest.raises(ValidationError):
            load_config(f)
