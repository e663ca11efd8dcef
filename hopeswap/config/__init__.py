"""
HopeSwap Configuration

Loads hopeswap.toml for deployments.
Environment variables override TOML values.
"""

from .loader import (
    ExchangeConfig,
    ChainSectionConfig,
    FactorySectionConfig,
    LoggingSectionConfig,
    load_config,
)

__all__ = [
    "ExchangeConfig",
    "ChainSectionConfig",
    "FactorySectionConfig",
    "LoggingSectionConfig",
    "load_config",
]
