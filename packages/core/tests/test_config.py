"""Tests for configuration loading and parsing."""

import pytest

from revgate_core.changeset import resolve_change_set
from revgate_core.config import (
    GateConfiguration,
    load_config,
    parse_bool,
    parse_float,
    parse_gate_config,
    parse_rulesets,
    parse_service_settings,
)
from revgate_core.errors import ConfigurationError


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "REVGATE_API_KEY",
        "REVGATE_API_URL",
        "REVGATE_RULESETS",
        "REVGATE_THRESHOLD",
        "REVGATE_FAIL_ON_CRITICAL",
        "REVGATE_POST_COMMENT",
        "REVGATE_TIMEOUT",
        "GITHUB_TOKEN",
    ):
        monkeypatch.delenv(name, raising=False)


# ---------------------------------------------------------------------------
# load_config
# ---------------------------------------------------------------------------


class TestLoadConfig:
    def test_defaults_applied_when_no_config_file(self, tmp_path):
        config = load_config(config_path=str(tmp_path / "nonexistent.yml"))
        assert config["threshold"] == 0.8
        assert config["fail_on_critical"] is True
        assert config["post_comment"] is True
        assert config["rulesets"] == ["security", "architecture", "deception"]
        assert config["exclude"] == []

    def test_config_file_overrides_defaults(self, tmp_path):
        cfg = tmp_path / ".revgate.yml"
        cfg.write_text("threshold: 0.9\nfail_on_critical: false\n")
        config = load_config(config_path=str(cfg))
        assert config["threshold"] == 0.9
        assert config["fail_on_critical"] is False

    def test_dashed_keys_accepted(self, tmp_path):
        cfg = tmp_path / ".revgate.yml"
        cfg.write_text("post-comment: false\n")
        config = load_config(config_path=str(cfg))
        assert config["post_comment"] is False

    def test_env_overrides_config_file(self, tmp_path, monkeypatch):
        cfg = tmp_path / ".revgate.yml"
        cfg.write_text("threshold: 0.9\n")
        monkeypatch.setenv("REVGATE_THRESHOLD", "0.7")
        config = load_config(config_path=str(cfg))
        assert config["threshold"] == "0.7"

    def test_cli_overrides_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("REVGATE_RULESETS", "security")
        config = load_config(config_path=str(tmp_path / "none.yml"), cli_overrides={"rulesets": "architecture"})
        assert config["rulesets"] == "architecture"

    def test_none_cli_overrides_ignored(self, tmp_path):
        cfg = tmp_path / ".revgate.yml"
        cfg.write_text("threshold: 0.5\n")
        config = load_config(config_path=str(cfg), cli_overrides={"threshold": None})
        assert config["threshold"] == 0.5

    def test_api_key_from_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("REVGATE_API_KEY", "secret")
        config = load_config(config_path=str(tmp_path / "none.yml"))
        assert config["api_key"] == "secret"

    def test_invalid_yaml_raises_configuration_error(self, tmp_path):
        cfg = tmp_path / ".revgate.yml"
        cfg.write_text("threshold: [unclosed\n")
        with pytest.raises(ConfigurationError):
            load_config(config_path=str(cfg))

    def test_non_mapping_yaml_raises(self, tmp_path):
        cfg = tmp_path / ".revgate.yml"
        cfg.write_text("- just\n- a list\n")
        with pytest.raises(ConfigurationError):
            load_config(config_path=str(cfg))

    def test_lists_are_not_shared_references(self, tmp_path):
        config_a = load_config(config_path=str(tmp_path / "none.yml"))
        config_b = load_config(config_path=str(tmp_path / "none.yml"))
        config_a["exclude"].append("vendor/")
        config_a["rulesets"].append("extra")
        assert config_b["exclude"] == []
        assert "extra" not in config_b["rulesets"]


# ---------------------------------------------------------------------------
# Scalar parsing
# ---------------------------------------------------------------------------


class TestParseBool:
    @pytest.mark.parametrize("value", ["true", "TRUE", "yes", "1", "on", True])
    def test_truthy(self, value):
        assert parse_bool(value, "flag") is True

    @pytest.mark.parametrize("value", ["false", "False", "no", "0", "off", False])
    def test_falsy(self, value):
        assert parse_bool(value, "flag") is False

    def test_garbage_raises(self):
        with pytest.raises(ConfigurationError, match="flag"):
            parse_bool("maybe", "flag")


class TestParseFloat:
    def test_numeric_string(self):
        assert parse_float("0.75", "threshold", 0.0, 1.0) == 0.75

    def test_out_of_range_raises(self):
        with pytest.raises(ConfigurationError):
            parse_float("1.5", "threshold", 0.0, 1.0)

    def test_not_a_number_raises(self):
        with pytest.raises(ConfigurationError):
            parse_float("high", "threshold")

    def test_nan_raises(self):
        with pytest.raises(ConfigurationError):
            parse_float("nan", "threshold")

    def test_bool_rejected(self):
        with pytest.raises(ConfigurationError):
            parse_float(True, "threshold")


class TestParseRulesets:
    def test_comma_string_gets_latest_version(self):
        assert parse_rulesets("security, architecture") == ("security:latest", "architecture:latest")

    def test_explicit_version_kept(self):
        assert parse_rulesets("security:2.1") == ("security:2.1",)

    def test_list_input(self):
        assert parse_rulesets(["deception", "security:1"]) == ("deception:latest", "security:1")

    def test_duplicates_collapse_first_wins(self):
        assert parse_rulesets("security,architecture,security") == ("security:latest", "architecture:latest")

    def test_empty_raises(self):
        with pytest.raises(ConfigurationError):
            parse_rulesets(" , ")

    def test_missing_version_after_colon_raises(self):
        with pytest.raises(ConfigurationError):
            parse_rulesets("security:")

    def test_wrong_type_raises(self):
        with pytest.raises(ConfigurationError):
            parse_rulesets(42)


# ---------------------------------------------------------------------------
# Typed settings
# ---------------------------------------------------------------------------


class TestParseGateConfig:
    def test_defaults(self, tmp_path):
        gate = parse_gate_config(load_config(config_path=str(tmp_path / "none.yml")))
        assert gate == GateConfiguration()
        assert gate.rulesets == ("security:latest", "architecture:latest", "deception:latest")

    def test_string_flags_parsed(self):
        gate = parse_gate_config(
            {"threshold": "0.6", "fail_on_critical": "false", "post_comment": "false", "rulesets": "security"}
        )
        assert gate.threshold == 0.6
        assert gate.fail_on_critical is False
        assert gate.post_comment is False
        assert gate.rulesets == ("security:latest",)

    def test_malformed_threshold_fails_fast(self):
        with pytest.raises(ConfigurationError):
            parse_gate_config({"threshold": "eighty"})

    def test_scalar_extension_from_yaml_is_one_entry(self, tmp_path):
        cfg = tmp_path / ".revgate.yml"
        cfg.write_text("extensions: py\nexclude: vendor/\n")
        gate = parse_gate_config(load_config(config_path=str(cfg)))
        assert gate.extensions == ("py",)
        assert gate.exclude == ("vendor/",)
        assert resolve_change_set(["src/app.py", "vendor/dep.py"], gate.extensions, gate.exclude) == ("src/app.py",)

    def test_comma_separated_patterns(self):
        gate = parse_gate_config({"extensions": ".py, .go", "exclude": "vendor/, *.min.js,vendor/"})
        assert gate.extensions == (".py", ".go")
        assert gate.exclude == ("vendor/", "*.min.js")

    def test_list_patterns(self):
        gate = parse_gate_config({"extensions": ["py", "ts"], "exclude": ["migrations"]})
        assert gate.extensions == ("py", "ts")
        assert gate.exclude == ("migrations",)

    @pytest.mark.parametrize("value", [5, {"py": True}, ["py", 3]])
    def test_malformed_extensions_rejected(self, value):
        with pytest.raises(ConfigurationError, match="extensions"):
            parse_gate_config({"extensions": value})

    @pytest.mark.parametrize("value", [[], "", " , "])
    def test_empty_extension_list_rejected(self, value):
        with pytest.raises(ConfigurationError, match="at least one"):
            parse_gate_config({"extensions": value})

    def test_malformed_exclude_rejected(self):
        with pytest.raises(ConfigurationError, match="exclude"):
            parse_gate_config({"exclude": True})

    def test_missing_exclude_means_none(self):
        assert parse_gate_config({"exclude": None}).exclude == ()

    def test_configuration_is_frozen(self):
        gate = GateConfiguration()
        with pytest.raises(AttributeError):
            gate.threshold = 0.1


class TestParseServiceSettings:
    def test_requires_api_key(self):
        with pytest.raises(ConfigurationError, match="API key"):
            parse_service_settings({"api_key": ""})

    def test_strips_trailing_slash(self):
        settings = parse_service_settings({"api_key": "k", "api_url": "https://example.test/"})
        assert settings.api_url == "https://example.test"

    def test_rejects_non_http_url(self):
        with pytest.raises(ConfigurationError):
            parse_service_settings({"api_key": "k", "api_url": "ftp://example.test"})

    def test_timeout_parsed(self):
        settings = parse_service_settings({"api_key": "k", "timeout": "30"})
        assert settings.timeout == 30.0
        assert settings.max_retries == 3
        assert settings.base_delay == 2.0

    def test_non_positive_timeout_raises(self):
        with pytest.raises(ConfigurationError):
            parse_service_settings({"api_key": "k", "timeout": "0"})
