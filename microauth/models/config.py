"""
Configuration data models for the secure serving application.
"""
from dataclasses import dataclass, field
from typing import List, Optional

from ..security.models import DEFAULT_HEADER_NAME


@dataclass
class ServerConfig:
    """Main configuration class containing all application settings."""

    # Listener settings
    host: str = "0.0.0.0"
    port: int = 8443
    enable_tls: bool = True

    # Authorization settings
    token: str = ""
    header_name: str = DEFAULT_HEADER_NAME
    excluded_paths: List[str] = field(default_factory=lambda: ["/health"])

    # Certificate settings (generated when cert_path is empty)
    cert_path: str = ""
    key_path: str = ""
    key_password: Optional[str] = None
    cert_host: str = "microbox.cloud"

    # Application settings
    log_level: str = "INFO"
    log_file_path: str = "logs/microauth.log"

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate_types()

    def _validate_types(self):
        """Ensure all configuration values have correct types."""
        if not isinstance(self.port, int) or not (1 <= self.port <= 65535):
            raise ValueError("port must be an integer between 1 and 65535")

        if not isinstance(self.header_name, str) or not self.header_name:
            raise ValueError("header_name must be a non-empty string")

        if not isinstance(self.excluded_paths, list):
            raise ValueError("excluded_paths must be a list of paths")

        if self.log_level not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            raise ValueError("log_level must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL")

    @property
    def address(self) -> str:
        """Listener address in host:port form."""
        if ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"


@dataclass
class ConfigValidationError:
    """Represents a configuration validation error."""
    field: str
    message: str
    severity: str = "error"  # error, warning

    def __str__(self):
        return f"{self.severity.upper()}: {self.field} - {self.message}"


@dataclass
class ConfigValidationResult:
    """Result of configuration validation."""
    is_valid: bool
    errors: list[ConfigValidationError]
    warnings: list[ConfigValidationError]

    def __post_init__(self):
        """Separate errors and warnings."""
        all_issues = self.errors + self.warnings
        self.errors = [e for e in all_issues if e.severity == "error"]
        self.warnings = [e for e in all_issues if e.severity == "warning"]

    def has_errors(self) -> bool:
        """Check if there are any validation errors."""
        return len(self.errors) > 0

    def has_warnings(self) -> bool:
        """Check if there are any validation warnings."""
        return len(self.warnings) > 0

    def get_error_summary(self) -> str:
        """Get a formatted summary of all errors and warnings."""
        lines = []

        if self.errors:
            lines.append("Configuration Errors:")
            for error in self.errors:
                lines.append(f"  - {error}")

        if self.warnings:
            lines.append("Configuration Warnings:")
            for warning in self.warnings:
                lines.append(f"  - {warning}")

        return "\n".join(lines) if lines else "Configuration is valid"
