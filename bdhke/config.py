"""
Configuration for wallets and mints built on the BDHKE core.
"""

import json
import logging
import os
from dataclasses import dataclass, field, asdict
from typing import List, Optional

from .keyset import DEFAULT_MAX_ORDER
from .tokens import TokenVersion

logger = logging.getLogger(__name__)

ENV_PREFIX = "BDHKE_"

_TRUE = {"1", "true", "yes", "on"}

@dataclass
class LogConfig:
    """Logging configuration."""
    level: str = "WARNING"
    file: Optional[str] = None
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

@dataclass
class Settings:
    """
    Core settings.

    unit: unit of account for new keysets and tokens.
    max_order: number of power-of-two denominations per generated keyset.
    token_version: version marker used when serializing tokens.
    include_uri: prefix serialized tokens with "cashu:".
    include_dleq: keep DLEQ data (with the blinding factor) on new proofs.
    """
    unit: str = "sat"
    max_order: int = DEFAULT_MAX_ORDER
    token_version: str = TokenVersion.V1.value
    include_uri: bool = False
    include_dleq: bool = False
    log: LogConfig = field(default_factory=LogConfig)

    @property
    def version(self) -> TokenVersion:
        return TokenVersion(self.token_version)

    def validate(self) -> List[str]:
        """
        Validate configuration.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if not self.unit:
            errors.append("unit cannot be empty")

        if self.max_order < 1 or self.max_order > 64:
            errors.append(f"max_order must be between 1 and 64: {self.max_order}")

        if self.token_version not in {v.value for v in TokenVersion}:
            errors.append(f"Unknown token version: {self.token_version}")

        if logging.getLevelName(self.log.level.upper()) not in (
            logging.DEBUG, logging.INFO, logging.WARNING, logging.ERROR, logging.CRITICAL
        ):
            errors.append(f"Unknown log level: {self.log.level}")

        return errors

    def save(self, path: str) -> None:
        """Save configuration to file."""
        with open(path, 'w') as f:
            json.dump(asdict(self), f, indent=2)

        logger.info(f"Configuration saved to {path}")

    @classmethod
    def load(cls, path: str) -> "Settings":
        """Load configuration from file."""
        with open(path, 'r') as f:
            data = json.load(f)

        config = cls(
            unit=data.get("unit", "sat"),
            max_order=data.get("max_order", DEFAULT_MAX_ORDER),
            token_version=data.get("token_version", TokenVersion.V1.value),
            include_uri=data.get("include_uri", False),
            include_dleq=data.get("include_dleq", False),
        )

        if "log" in data:
            config.log = LogConfig(**data["log"])

        logger.info(f"Configuration loaded from {path}")
        return config

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "Settings":
        """Build settings from BDHKE_* environment variables."""
        env = os.environ if environ is None else environ
        config = cls()

        if f"{ENV_PREFIX}UNIT" in env:
            config.unit = env[f"{ENV_PREFIX}UNIT"]
        if f"{ENV_PREFIX}MAX_ORDER" in env:
            config.max_order = int(env[f"{ENV_PREFIX}MAX_ORDER"])
        if f"{ENV_PREFIX}TOKEN_VERSION" in env:
            config.token_version = env[f"{ENV_PREFIX}TOKEN_VERSION"]
        if f"{ENV_PREFIX}INCLUDE_URI" in env:
            config.include_uri = env[f"{ENV_PREFIX}INCLUDE_URI"].lower() in _TRUE
        if f"{ENV_PREFIX}INCLUDE_DLEQ" in env:
            config.include_dleq = env[f"{ENV_PREFIX}INCLUDE_DLEQ"].lower() in _TRUE
        if f"{ENV_PREFIX}LOG_LEVEL" in env:
            config.log.level = env[f"{ENV_PREFIX}LOG_LEVEL"]

        return config

def configure_logging(log: LogConfig) -> logging.Logger:
    """Attach a handler to the package logger according to `log`."""
    package_logger = logging.getLogger("bdhke")
    package_logger.setLevel(log.level.upper())

    handler: logging.Handler
    if log.file:
        handler = logging.FileHandler(log.file)
    else:
        handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(log.format))

    for existing in list(package_logger.handlers):
        package_logger.removeHandler(existing)
        existing.close()
    package_logger.addHandler(handler)
    return package_logger
