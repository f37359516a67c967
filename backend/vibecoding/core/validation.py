"""
Configuration Validation Module
Validates gateway and runtime settings on startup
"""
import logging
from typing import List, Optional, Tuple
from dataclasses import dataclass

from vibecoding.core.config import Settings

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Result of a configuration validation check."""
    component: str
    setting: str
    is_valid: bool
    message: str


class ConfigValidator:
    """
    Validates application settings at startup.

    Errors always fail validation. Warnings (e.g. no Redis configured)
    only fail it in strict mode, which production uses.
    """

    def __init__(self, settings: Settings, available_gateways: List[str], strict: bool = False):
        """
        Initialize validator.

        Args:
            settings: Application settings to check
            available_gateways: Names registered with the gateway factory
            strict: If True, treat warnings as errors
        """
        self.settings = settings
        self.available_gateways = available_gateways
        self.strict = strict
        self.results: List[ValidationResult] = []

    def validate_all(self) -> Tuple[bool, List[ValidationResult]]:
        """
        Run every check.

        Returns:
            Tuple of (all_valid, list of results)
        """
        self.results = []
        s = self.settings

        gateway = s.active_gateway
        if gateway in self.available_gateways:
            self._add_success("gateway", "gateway_provider", f"Completion gateway '{gateway}' registered")
        else:
            self._add_error(
                "gateway", "gateway_provider",
                f"Unknown completion gateway '{gateway}' (available: {', '.join(self.available_gateways)})"
            )

        if s.dispatch_timeout_seconds > 0:
            self._add_success("session", "dispatch_timeout_seconds", f"Dispatch timeout {s.dispatch_timeout_seconds:g}s")
        else:
            self._add_error("session", "dispatch_timeout_seconds", "Dispatch timeout must be positive")

        if s.history_window >= 1:
            self._add_success("session", "history_window", f"Prompt history window {s.history_window} turns")
        else:
            self._add_error("session", "history_window", "History window must be at least 1")

        if s.pool_max_size >= 1:
            self._add_success("pool", "pool_max_size", f"Connection pool size {s.pool_max_size}")
        else:
            self._add_error("pool", "pool_max_size", "Connection pool size must be positive")

        if s.pool_idle_ttl_seconds <= 0:
            self._add_error("pool", "pool_idle_ttl_seconds", "Connection idle TTL must be positive")

        if gateway == "relay" and not s.relay_server_url:
            self._add_error("gateway", "relay_server_url", "Relay gateway requires relay_server_url")

        if s.redis_url:
            self._add_success("storage", "redis_url", "Redis settings store configured")
        else:
            self._add_warning("storage", "redis_url", "Redis not configured (in-memory settings store will be used)")

        if s.demo_mode:
            self._add_warning("gateway", "demo_mode", "Demo mode enabled, responses are simulated")

        all_valid = all(r.is_valid for r in self.results)
        return all_valid, self.results

    def _add_success(self, component: str, setting: str, message: str):
        self.results.append(ValidationResult(component, setting, True, message))

    def _add_error(self, component: str, setting: str, message: str):
        self.results.append(ValidationResult(component, setting, False, message))

    def _add_warning(self, component: str, setting: str, message: str):
        """Add warning validation result."""
        self.results.append(ValidationResult(
            component=component,
            setting=setting,
            is_valid=not self.strict,  # Warnings become errors in strict mode
            message=f"WARNING: {message}"
        ))

    def log_results(self):
        """Log all validation results."""
        for r in self.results:
            if not r.is_valid:
                logger.error(f"  ✗ [{r.component}] {r.message}")
            elif r.message.startswith("WARNING"):
                logger.warning(f"  ⚠ [{r.component}] {r.message}")
            else:
                logger.info(f"  ✓ [{r.component}] {r.message}")

    def get_error_summary(self) -> Optional[str]:
        """Get summary of errors for exception message."""
        errors = [r for r in self.results if not r.is_valid]
        if not errors:
            return None

        lines = ["Configuration errors:"]
        for r in errors:
            lines.append(f"  - {r.setting}: {r.message}")
        return "\n".join(lines)


def validate_config_on_startup(settings: Settings, available_gateways: List[str]) -> None:
    """
    Validate configuration at startup. Strict when running in production.

    Raises:
        RuntimeError: If configuration is invalid
    """
    validator = ConfigValidator(
        settings,
        available_gateways,
        strict=settings.environment == "production"
    )
    all_valid, _ = validator.validate_all()
    validator.log_results()

    if not all_valid:
        raise RuntimeError(validator.get_error_summary())

    logger.info("Configuration validated successfully")
