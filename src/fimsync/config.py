"""Configuration management for the FIM CSV Sync tool."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

import yaml

from .constants import (
    DEFAULT_FIELD_DELIMITER,
    DEFAULT_MATCH_ATTRIBUTE,
    DEFAULT_MULTI_VALUE_DELIMITER,
    DEFAULT_OBJECT_TYPE,
    DEFAULT_OPERATION,
    DEFAULT_REFERENCE_DELIMITER,
    DEFAULT_STATE,
)


class EmptyValuePolicy(str, Enum):
    """How an empty CSV field is translated."""

    OMIT = "omit"  # Leave the attribute untouched
    CLEAR = "clear"  # Clear scalar attributes on Put rows


class ReferenceMode(str, Enum):
    """Where reference expressions are resolved."""

    QUERY = "query"  # Query the directory before building the request
    DEFERRED = "deferred"  # Submit Resolve objects and let the service resolve them


class ReferenceFailurePolicy(str, Enum):
    """What happens when a reference attribute value cannot be resolved."""

    ABORT = "abort"  # Abort the whole run
    SKIP = "skip"  # Skip the current row and continue


@dataclass
class PolicyConfig:
    """
    Policy configuration for import runs.

    Controls the choices the row translation leaves open.
    """

    empty_values: EmptyValuePolicy = EmptyValuePolicy.OMIT
    reference_mode: ReferenceMode = ReferenceMode.QUERY
    reference_failure: ReferenceFailurePolicy = ReferenceFailurePolicy.ABORT

    # Persistent schema caching is not implemented; the flag is accepted and ignored
    schema_cache: bool = False

    dry_run: bool = False

    def __post_init__(self) -> None:
        # YAML and CLI hand us plain strings
        self.empty_values = EmptyValuePolicy(self.empty_values)
        self.reference_mode = ReferenceMode(self.reference_mode)
        self.reference_failure = ReferenceFailurePolicy(self.reference_failure)


@dataclass
class FIMConfig:
    """FIM Service REST gateway connection configuration."""

    base_url: str
    username: str
    password: str
    api_version: str = "v2"
    timeout: int = 30
    verify_ssl: bool = True
    max_connections: int = 10  # Maximum total connections
    max_keepalive: int = 5  # Maximum keep-alive connections


@dataclass
class CSVFormatConfig:
    """Delimiters used by the input file."""

    delimiter: str = DEFAULT_FIELD_DELIMITER
    multi_value_delimiter: str = DEFAULT_MULTI_VALUE_DELIMITER
    reference_delimiter: str = DEFAULT_REFERENCE_DELIMITER

    def __post_init__(self) -> None:
        delimiters = {
            "delimiter": self.delimiter,
            "multi_value_delimiter": self.multi_value_delimiter,
            "reference_delimiter": self.reference_delimiter,
        }
        for name, value in delimiters.items():
            if not isinstance(value, str) or len(value) != 1:
                raise ValueError(f"{name} must be a single character, got {value!r}")
        if len(set(delimiters.values())) != len(delimiters):
            raise ValueError(
                "Field, multi-value and reference delimiters must all differ "
                f"(got {self.delimiter!r}, {self.multi_value_delimiter!r}, "
                f"{self.reference_delimiter!r})"
            )


@dataclass
class DefaultsConfig:
    """Run-level defaults used when a row has no override column."""

    object_type: str = DEFAULT_OBJECT_TYPE
    state: str = DEFAULT_STATE
    operation: str = DEFAULT_OPERATION
    match_attribute: str = DEFAULT_MATCH_ATTRIBUTE


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "console"
    file: Path | None = None


@dataclass
class ImporterConfig:
    """
    Complete configuration for the FIM CSV Sync tool.

    This combines all configuration sections.
    """

    fim: FIMConfig | None = None
    csv: CSVFormatConfig = field(default_factory=CSVFormatConfig)
    defaults: DefaultsConfig = field(default_factory=DefaultsConfig)
    policy: PolicyConfig = field(default_factory=PolicyConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, config_path: Path) -> "ImporterConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to YAML config file

        Returns:
            ImporterConfig instance
        """
        try:
            with open(config_path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file {config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(
                f"Invalid configuration file structure in {config_path}: "
                f"expected dictionary, got {type(data).__name__}"
            )

        fim_data = data.get("fim")
        fim = FIMConfig(**fim_data) if fim_data else None

        csv_format = CSVFormatConfig(**(data.get("csv") or {}))
        defaults = DefaultsConfig(**(data.get("defaults") or {}))
        policy = PolicyConfig(**(data.get("policy") or {}))

        logging_data = data.get("logging") or {}
        # Convert file path string to Path if present
        if logging_data.get("file"):
            logging_data["file"] = Path(logging_data["file"])
        logging = LoggingConfig(**logging_data)

        return cls(
            fim=fim,
            csv=csv_format,
            defaults=defaults,
            policy=policy,
            logging=logging,
        )

    def to_file(self, config_path: Path) -> None:
        """
        Save configuration to YAML file.

        Args:
            config_path: Path to save config file
        """
        data = {
            "fim": self.fim.__dict__ if self.fim else None,
            "csv": self.csv.__dict__,
            "defaults": self.defaults.__dict__,
            "policy": {
                k: v.value if isinstance(v, Enum) else v for k, v in self.policy.__dict__.items()
            },
            "logging": {
                k: str(v) if isinstance(v, Path) else v
                for k, v in self.logging.__dict__.items()
                if v is not None
            },
        }

        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    @classmethod
    def from_env(cls) -> "ImporterConfig":
        """
        Create configuration from environment variables.

        Environment variables:
            FIM_URL: FIM REST gateway base URL
            FIM_USERNAME: FIM username
            FIM_PASSWORD: FIM password
            FIM_API_VERSION: API version (default: v2)
            FIM_VERIFY_SSL: Set to 'false' to disable certificate checks
            LOG_LEVEL: Logging level (default: INFO)

        Returns:
            ImporterConfig instance

        Raises:
            ValueError: If FIM_URL is set but required credentials are missing
        """
        import os

        fim_config = None
        fim_url = os.getenv("FIM_URL")
        if fim_url:
            username = os.environ.get("FIM_USERNAME", "")
            password = os.environ.get("FIM_PASSWORD", "")

            missing_creds = []
            if not username:
                missing_creds.append("FIM_USERNAME")
            if not password:
                missing_creds.append("FIM_PASSWORD")

            if missing_creds:
                raise ValueError(
                    f"FIM_URL is set but required credentials are missing: {', '.join(missing_creds)}. "
                    f"Please set all required environment variables for FIM authentication."
                )

            verify_ssl_str = os.environ.get("FIM_VERIFY_SSL", "true").lower()
            verify_ssl = verify_ssl_str not in ("false", "0", "no", "off")

            fim_config = FIMConfig(
                base_url=fim_url,
                username=username,
                password=password,
                api_version=os.environ.get("FIM_API_VERSION", "v2"),
                verify_ssl=verify_ssl,
            )

        logging_config = LoggingConfig(
            level=os.environ.get("LOG_LEVEL", "INFO"),
            format=os.environ.get("LOG_FORMAT", "console"),
        )

        return cls(fim=fim_config, logging=logging_config)


def load_config(config_file: Path | None = None) -> ImporterConfig:
    """
    Load configuration from file or environment variables.

    Args:
        config_file: Optional path to YAML config file

    Returns:
        ImporterConfig instance

    Raises:
        FileNotFoundError: If config_file is specified but doesn't exist
    """
    if config_file:
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_file}")
        return ImporterConfig.from_file(config_file)
    return ImporterConfig.from_env()
