"""Tests for RuleSettings — unified settings with TOML source."""

from pathlib import Path

import click
import pytest

from rulebridge.config.settings import RuleSettings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("RULEBRIDGE_CONFIG", "RULEBRIDGE_VERBOSE", "RULEBRIDGE_JSON_OUTPUT"):
        monkeypatch.delenv(name, raising=False)


class TestRuleSettingsDefaults:
    def test_all_defaults(self, tmp_path: Path) -> None:
        settings = RuleSettings.from_cli(search_root=tmp_path)
        assert settings.config_path is None
        assert settings.json_output is False
        assert settings.verbose is False
        assert settings.log_json is False
        assert settings.field_services == {}

    def test_frozen(self, tmp_path: Path) -> None:
        settings = RuleSettings.from_cli(search_root=tmp_path)
        with pytest.raises(Exception):
            settings.verbose = True  # type: ignore[misc]


class TestTomlSource:
    def test_loads_field_services(self, tmp_path: Path) -> None:
        toml = tmp_path / "rulebridge.toml"
        toml.write_text(
            "[field_services.LOYALTY_FIELDS]\n"
            'entity_key = "loyalty"\n'
            'fields = [{name = "points", type = "INTEGER"}]\n'
        )
        settings = RuleSettings.from_cli(search_root=tmp_path)
        assert settings.config_path == toml
        section = settings.field_services["LOYALTY_FIELDS"]
        assert section.entity_key == "loyalty"
        assert section.fields[0].type == "INTEGER"

    def test_explicit_config_path(self, tmp_path: Path) -> None:
        custom = tmp_path / "custom" / "rules.toml"
        custom.parent.mkdir()
        custom.write_text("[field_services.ORDER_FIELDS]\nextend = true\n")
        settings = RuleSettings.from_cli(config_path=str(custom))
        assert settings.config_path == custom
        assert settings.field_services["ORDER_FIELDS"].extend is True

    def test_invalid_toml(self, tmp_path: Path) -> None:
        (tmp_path / "rulebridge.toml").write_text("[field_services\n")
        with pytest.raises(click.ClickException, match="Invalid TOML"):
            RuleSettings.from_cli(search_root=tmp_path)


class TestPriority:
    def test_env_beats_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RULEBRIDGE_VERBOSE", "true")
        assert RuleSettings.from_cli(search_root=tmp_path).verbose is True

    def test_cli_flag_beats_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RULEBRIDGE_JSON_OUTPUT", "false")
        assert RuleSettings.from_cli(search_root=tmp_path, json_output=True).json_output is True
