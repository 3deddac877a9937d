"""Unit tests for configuration management."""

from pathlib import Path

import pytest
import yaml

from fimsync.config import (
    CSVFormatConfig,
    DefaultsConfig,
    EmptyValuePolicy,
    FIMConfig,
    ImporterConfig,
    LoggingConfig,
    PolicyConfig,
    ReferenceFailurePolicy,
    ReferenceMode,
    load_config,
)


class TestPolicyConfig:
    """Test PolicyConfig dataclass."""

    def test_default_values(self):
        """Test default policy configuration values."""
        policy = PolicyConfig()

        assert policy.empty_values == EmptyValuePolicy.OMIT
        assert policy.reference_mode == ReferenceMode.QUERY
        assert policy.reference_failure == ReferenceFailurePolicy.ABORT
        assert policy.schema_cache is False
        assert policy.dry_run is False

    def test_strings_are_coerced(self):
        """Test that plain strings from YAML become enums."""
        policy = PolicyConfig(empty_values="clear", reference_mode="deferred", reference_failure="skip")

        assert policy.empty_values is EmptyValuePolicy.CLEAR
        assert policy.reference_mode is ReferenceMode.DEFERRED
        assert policy.reference_failure is ReferenceFailurePolicy.SKIP

    def test_invalid_policy_value(self):
        """Test that an unknown policy value is rejected."""
        with pytest.raises(ValueError):
            PolicyConfig(empty_values="zero")


class TestCSVFormatConfig:
    """Test delimiter validation."""

    def test_defaults(self):
        """Test default delimiters."""
        csv_format = CSVFormatConfig()

        assert csv_format.delimiter == ","
        assert csv_format.multi_value_delimiter == ";"
        assert csv_format.reference_delimiter == "|"

    def test_multi_character_delimiter_rejected(self):
        """Test that delimiters must be one character."""
        with pytest.raises(ValueError, match="single character"):
            CSVFormatConfig(delimiter="::")

    def test_delimiters_must_differ(self):
        """Test that the three delimiters must be distinct."""
        with pytest.raises(ValueError, match="must all differ"):
            CSVFormatConfig(delimiter=";", multi_value_delimiter=";")


class TestDefaultsConfig:
    """Test DefaultsConfig dataclass."""

    def test_default_values(self):
        """Test run defaults."""
        defaults = DefaultsConfig()

        assert defaults.object_type == "Person"
        assert defaults.state == "Create"
        assert defaults.operation == "Add"
        assert defaults.match_attribute == "ObjectID"


class TestImporterConfig:
    """Test ImporterConfig loading and saving."""

    def test_from_file(self, tmp_path: Path):
        """Test loading every section from YAML."""
        config_path = tmp_path / "config.yaml"
        config_path.write_text(
            yaml.dump(
                {
                    "fim": {
                        "base_url": "https://fim.example.com",
                        "username": "svc",
                        "password": "pw",
                    },
                    "csv": {"delimiter": "\t"},
                    "defaults": {"state": "Put", "match_attribute": "EmployeeID"},
                    "policy": {"reference_failure": "skip", "dry_run": True},
                    "logging": {"level": "DEBUG", "file": "logs/sync.log"},
                }
            )
        )

        config = ImporterConfig.from_file(config_path)

        assert config.fim.base_url == "https://fim.example.com"
        assert config.fim.api_version == "v2"
        assert config.csv.delimiter == "\t"
        assert config.defaults.state == "Put"
        assert config.defaults.match_attribute == "EmployeeID"
        assert config.policy.reference_failure == ReferenceFailurePolicy.SKIP
        assert config.policy.dry_run is True
        assert config.logging.file == Path("logs/sync.log")

    def test_from_file_without_fim_section(self, tmp_path: Path):
        """Test that the FIM section is optional."""
        config_path = tmp_path / "config.yaml"
        config_path.write_text("defaults:\n  object_type: Group\n")

        config = ImporterConfig.from_file(config_path)

        assert config.fim is None
        assert config.defaults.object_type == "Group"

    def test_from_file_not_a_mapping(self, tmp_path: Path):
        """Test that a YAML list is rejected."""
        config_path = tmp_path / "config.yaml"
        config_path.write_text("- a\n- b\n")

        with pytest.raises(ValueError, match="expected dictionary"):
            ImporterConfig.from_file(config_path)

    def test_round_trip(self, tmp_path: Path):
        """Test that to_file output loads back to the same values."""
        config = ImporterConfig(
            fim=FIMConfig(base_url="https://fim", username="u", password="p"),
            policy=PolicyConfig(reference_mode=ReferenceMode.DEFERRED),
            logging=LoggingConfig(level="WARNING"),
        )
        config_path = tmp_path / "out" / "config.yaml"

        config.to_file(config_path)
        loaded = ImporterConfig.from_file(config_path)

        assert loaded.fim == config.fim
        assert loaded.policy.reference_mode == ReferenceMode.DEFERRED
        assert loaded.logging.level == "WARNING"

    def test_from_env(self, monkeypatch):
        """Test configuration from environment variables."""
        monkeypatch.setenv("FIM_URL", "https://fim.example.com")
        monkeypatch.setenv("FIM_USERNAME", "svc")
        monkeypatch.setenv("FIM_PASSWORD", "pw")
        monkeypatch.setenv("FIM_VERIFY_SSL", "false")

        config = ImporterConfig.from_env()

        assert config.fim.base_url == "https://fim.example.com"
        assert config.fim.verify_ssl is False

    def test_from_env_missing_credentials(self, monkeypatch):
        """Test that FIM_URL without credentials is an error."""
        monkeypatch.setenv("FIM_URL", "https://fim.example.com")
        monkeypatch.delenv("FIM_USERNAME", raising=False)
        monkeypatch.delenv("FIM_PASSWORD", raising=False)

        with pytest.raises(ValueError, match="FIM_USERNAME"):
            ImporterConfig.from_env()

    def test_from_env_without_url(self, monkeypatch):
        """Test that no FIM_URL means no connection section."""
        monkeypatch.delenv("FIM_URL", raising=False)

        assert ImporterConfig.from_env().fim is None


class TestLoadConfig:
    """Test load_config helper."""

    def test_missing_file(self, tmp_path: Path):
        """Test that a named but missing file raises."""
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yaml")
