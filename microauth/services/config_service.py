"""
Configuration service for loading and validating application settings.
"""
import os
import configparser
from typing import Optional, Dict, Any
import logging

from ..models.config import ServerConfig, ConfigValidationError, ConfigValidationResult


class ConfigService:
    """Service for loading and validating application configuration."""

    def __init__(self, config_path: Optional[str] = None):
        self.logger = logging.getLogger(__name__)
        self._config = None
        if config_path:
            self._config = self.load_config(config_path)

    def get_config(self) -> ServerConfig:
        """
        Get the loaded configuration.

        Returns:
            ServerConfig object

        Raises:
            ValueError: If no configuration has been loaded
        """
        if self._config is None:
            raise ValueError("No configuration loaded. Call load_config() first.")
        return self._config

    def load_config(self, config_path: str) -> ServerConfig:
        """
        Load configuration from a property file.

        Args:
            config_path: Path to the configuration file

        Returns:
            ServerConfig object with loaded settings

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config file is invalid or has validation errors
        """
        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        config_data = self._load_config_file(config_path)
        config = self._create_config_from_data(config_data)

        validation_result = self.validate_config(config)

        if validation_result.has_errors():
            error_summary = validation_result.get_error_summary()
            raise ValueError(f"Configuration validation failed:\n{error_summary}")

        if validation_result.has_warnings():
            warning_summary = validation_result.get_error_summary()
            self.logger.warning(f"Configuration warnings:\n{warning_summary}")

        self._config = config
        return config

    def _load_config_file(self, config_path: str) -> Dict[str, Any]:
        """Load configuration data from file."""
        # Interpolation would mangle tokens and passwords containing '%'
        config_parser = configparser.ConfigParser(interpolation=None)

        try:
            config_parser.read(config_path)
        except configparser.Error as e:
            raise ValueError(f"Failed to parse configuration file: {e}")

        # Use section.key format for namespacing
        config_data = {}
        for section in config_parser.sections():
            for key, value in config_parser.items(section):
                config_data[f"{section}.{key}"] = value

        for key, value in config_parser.defaults().items():
            if key not in config_data:
                config_data[key] = value

        return config_data

    def _create_config_from_data(self, config_data: Dict[str, Any]) -> ServerConfig:
        """Create ServerConfig object from configuration data."""
        config_mapping = {
            # Listener settings
            "server.host": ("host", str),
            "host": ("host", str),
            "server.port": ("port", int),
            "port": ("port", int),
            "server.enable_tls": ("enable_tls", bool),
            "enable_tls": ("enable_tls", bool),

            # Authorization settings
            "auth.token": ("token", str),
            "token": ("token", str),
            "auth.header": ("header_name", str),
            "header_name": ("header_name", str),
            "auth.excluded_paths": ("excluded_paths", list),
            "excluded_paths": ("excluded_paths", list),

            # Certificate settings
            "tls.cert_path": ("cert_path", str),
            "cert_path": ("cert_path", str),
            "tls.key_path": ("key_path", str),
            "key_path": ("key_path", str),
            "tls.key_password": ("key_password", str),
            "key_password": ("key_password", str),
            "tls.cert_host": ("cert_host", str),
            "cert_host": ("cert_host", str),

            # Application settings
            "app.log_level": ("log_level", str),
            "log_level": ("log_level", str),
            "app.log_file_path": ("log_file_path", str),
            "log_file_path": ("log_file_path", str),
        }

        config_kwargs = {}

        for config_key, raw_value in config_data.items():
            if config_key in config_mapping:
                field_name, field_type = config_mapping[config_key]
                try:
                    if field_type == bool:
                        value = self._parse_bool(raw_value)
                    elif field_type == int:
                        value = int(raw_value)
                    elif field_type == list:
                        value = self._parse_list(raw_value)
                    else:
                        value = str(raw_value) if raw_value is not None else None

                    config_kwargs[field_name] = value
                except (ValueError, TypeError) as e:
                    raise ValueError(f"Invalid value for {config_key}: {raw_value} ({e})")

        return ServerConfig(**config_kwargs)

    def _parse_bool(self, value: Any) -> bool:
        """Parse boolean value from string."""
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.lower() in ("true", "yes", "1", "on", "enabled")
        return bool(value)

    def _parse_list(self, value: Any) -> list:
        """Parse a comma or newline separated list, keeping entries verbatim."""
        if isinstance(value, list):
            return value
        entries = str(value).replace("\n", ",").split(",")
        return [entry.strip() for entry in entries if entry.strip()]

    def validate_config(self, config: ServerConfig) -> ConfigValidationResult:
        """
        Validate configuration settings.

        Args:
            config: Configuration object to validate

        Returns:
            ConfigValidationResult with validation results
        """
        errors = []
        warnings = []

        if not config.token:
            errors.append(ConfigValidationError(
                "token",
                "An authorization token is required; refusing to serve without one"
            ))

        for path in config.excluded_paths:
            if not path.startswith("/"):
                warnings.append(ConfigValidationError(
                    "excluded_paths",
                    f"Excluded path does not start with '/' and will never match: {path}",
                    "warning"
                ))

        if config.cert_path or config.key_path:
            if not config.enable_tls:
                warnings.append(ConfigValidationError(
                    "cert_path",
                    "Certificate files are ignored when TLS is disabled",
                    "warning"
                ))

            for field_name, cert_path in [("cert_path", config.cert_path), ("key_path", config.key_path)]:
                if not cert_path:
                    errors.append(ConfigValidationError(
                        field_name,
                        "cert_path and key_path must be configured together"
                    ))
                elif not os.path.exists(cert_path):
                    errors.append(ConfigValidationError(
                        field_name,
                        f"Certificate file not found: {cert_path}"
                    ))
        elif config.enable_tls and not config.cert_host:
            errors.append(ConfigValidationError(
                "cert_host",
                "cert_host is required to generate a self-signed certificate"
            ))

        if not config.enable_tls:
            warnings.append(ConfigValidationError(
                "enable_tls",
                "TLS is disabled; tokens will travel in plaintext",
                "warning"
            ))

        if config.log_file_path:
            log_dir = os.path.dirname(config.log_file_path)
            if log_dir and not os.path.exists(log_dir):
                warnings.append(ConfigValidationError(
                    "log_file_path",
                    f"Log directory does not exist: {log_dir}",
                    "warning"
                ))

        all_issues = errors + warnings
        return ConfigValidationResult(
            is_valid=len(errors) == 0,
            errors=all_issues,
            warnings=[]
        )

    def create_default_config_file(self, config_path: str) -> None:
        """
        Create a default configuration file with example settings.

        Args:
            config_path: Path where to create the config file
        """
        config_content = """# microauth configuration file

[server]
host = 0.0.0.0
port = 8443
enable_tls = true

[auth]
# Required: the server refuses to start until a token is set
token =
header = X-MICROBOX-TOKEN
excluded_paths = /health

[tls]
# Leave cert_path empty to serve a generated self-signed certificate
cert_path =
key_path =
key_password =
cert_host = microbox.cloud

[app]
log_level = INFO
log_file_path = logs/microauth.log
"""

        config_dir = os.path.dirname(config_path)
        if config_dir:
            os.makedirs(config_dir, exist_ok=True)

        with open(config_path, 'w') as f:
            f.write(config_content)

        self.logger.info(f"Created default configuration file: {config_path}")
