"""
HopeSwap TOML Configuration Loader

Loads deployment settings from hopeswap.toml with environment variable
overrides.

Environment variable mapping:
    [chain] chain_id                   → HOPESWAP_CHAIN_ID
    [chain] genesis_timestamp          → HOPESWAP_GENESIS_TIMESTAMP
    [factory] fee_to_setter            → HOPESWAP_FEE_TO_SETTER
    [factory] fee_to                   → HOPESWAP_FEE_TO
    [factory] approved_token_manager   → HOPESWAP_APPROVED_TOKEN_MANAGER
    [logging] level                    → HOPESWAP_LOG_LEVEL
    [logging] file_output              → HOPESWAP_LOG_FILE_OUTPUT
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from ..constants import parse_bool
from ..crypto.address import is_valid_address
from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "hopeswap.toml"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------

@dataclass
class ChainSectionConfig:
    """[chain] section."""
    chain_id: int = 1
    genesis_timestamp: Optional[int] = None  # None → wall clock at deployment

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChainSectionConfig":
        return cls(
            chain_id=data.get("chain_id", 1),
            genesis_timestamp=data.get("genesis_timestamp"),
        )

    def apply_env(self) -> None:
        """Override from environment variables."""
        if v := os.environ.get("HOPESWAP_CHAIN_ID"):
            self.chain_id = int(v)
        if v := os.environ.get("HOPESWAP_GENESIS_TIMESTAMP"):
            self.genesis_timestamp = int(v)


@dataclass
class FactorySectionConfig:
    """[factory] section. An empty address means unset."""
    fee_to_setter: str = ""  # empty → the deploying account
    fee_to: str = ""
    approved_token_manager: str = ""
    deploy_token_manager: bool = False  # deploy and wire a fresh ApprovedTokenManager

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FactorySectionConfig":
        return cls(
            fee_to_setter=data.get("fee_to_setter", ""),
            fee_to=data.get("fee_to", ""),
            approved_token_manager=data.get("approved_token_manager", ""),
            deploy_token_manager=data.get("deploy_token_manager", False),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("HOPESWAP_FEE_TO_SETTER"):
            self.fee_to_setter = v
        if v := os.environ.get("HOPESWAP_FEE_TO"):
            self.fee_to = v
        if v := os.environ.get("HOPESWAP_APPROVED_TOKEN_MANAGER"):
            self.approved_token_manager = v


@dataclass
class LoggingSectionConfig:
    """[logging] section. Unset values fall back to the .env logger settings."""
    level: Optional[str] = None
    file_output: Optional[bool] = None
    log_file: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoggingSectionConfig":
        return cls(
            level=data.get("level"),
            file_output=data.get("file_output"),
            log_file=data.get("log_file"),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("HOPESWAP_LOG_LEVEL"):
            self.level = v.upper()
        if v := os.environ.get("HOPESWAP_LOG_FILE_OUTPUT"):
            parsed = parse_bool(v)
            if isinstance(parsed, bool):
                self.file_output = parsed


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------

@dataclass
class ExchangeConfig:
    """
    Exchange deployment configuration.

    Every value the registry is constructed with comes from here; nothing
    is read from module globals at deployment time.
    """
    chain: ChainSectionConfig = field(default_factory=ChainSectionConfig)
    factory: FactorySectionConfig = field(default_factory=FactorySectionConfig)
    logging: LoggingSectionConfig = field(default_factory=LoggingSectionConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExchangeConfig":
        return cls(
            chain=ChainSectionConfig.from_dict(data.get("chain", {})),
            factory=FactorySectionConfig.from_dict(data.get("factory", {})),
            logging=LoggingSectionConfig.from_dict(data.get("logging", {})),
        )

    @classmethod
    def from_file(cls, config_path: str) -> "ExchangeConfig":
        """
        Load configuration from a TOML file.

        A missing file is not an error: defaults (with env overrides) are used.

        Raises:
            ConfigurationError: if the file is not valid TOML
        """
        path = Path(config_path)
        if not path.exists():
            logger.warning("Config file not found: %s, using defaults", config_path)
            cfg = cls()
            cfg.apply_env()
            return cfg

        with open(path, "rb") as f:
            try:
                raw = tomllib.load(f)
            except tomllib.TOMLDecodeError as e:
                raise ConfigurationError(f"Invalid TOML in {config_path}: {e}") from e

        cfg = cls.from_dict(raw)
        cfg.apply_env()
        logger.debug("Loaded config from %s", config_path)
        return cfg

    # --- env overrides ----------------------------------------------------

    def apply_env(self) -> None:
        self.chain.apply_env()
        self.factory.apply_env()
        self.logging.apply_env()

    # --- validation -------------------------------------------------------

    def validate(self) -> bool:
        """
        Validate all configuration sections.

        Returns:
            True if all valid

        Raises:
            ConfigurationError: on invalid config
        """
        if not isinstance(self.chain.chain_id, int) or self.chain.chain_id < 1:
            raise ConfigurationError("chain_id must be >= 1")
        if self.chain.genesis_timestamp is not None and self.chain.genesis_timestamp < 0:
            raise ConfigurationError("genesis_timestamp cannot be negative")
        for name in ("fee_to_setter", "fee_to", "approved_token_manager"):
            value = getattr(self.factory, name)
            if value and not is_valid_address(value):
                raise ConfigurationError(f"Invalid address for factory.{name}: {value!r}")
        if self.factory.deploy_token_manager and self.factory.approved_token_manager:
            raise ConfigurationError(
                "Set either factory.approved_token_manager or factory.deploy_token_manager, not both"
            )
        if self.logging.level is not None and self.logging.level.upper() not in LOG_LEVELS:
            raise ConfigurationError(f"Invalid log level: {self.logging.level}")
        return True

    # --- serialisation ----------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict (for diagnostics, NOT for re-creating TOML)."""
        return {
            "chain": {
                "chain_id": self.chain.chain_id,
                "genesis_timestamp": self.chain.genesis_timestamp,
            },
            "factory": {
                "fee_to_setter": self.factory.fee_to_setter,
                "fee_to": self.factory.fee_to,
                "approved_token_manager": self.factory.approved_token_manager,
                "deploy_token_manager": self.factory.deploy_token_manager,
            },
            "logging": {
                "level": self.logging.level,
                "file_output": self.logging.file_output,
                "log_file": self.logging.log_file,
            },
        }


def load_config(path: Optional[str] = None) -> ExchangeConfig:
    """
    Load exchange configuration.

    Resolution order:
        1. Explicit *path* argument
        2. HOPESWAP_CONFIG env var
        3. ./hopeswap.toml in current directory
        4. Defaults (with env overrides)
    """
    if path is None:
        path = os.environ.get("HOPESWAP_CONFIG", DEFAULT_CONFIG_FILE)

    return ExchangeConfig.from_file(path)


