"""
Exchange deployment.

Builds a fresh Chain and the single PairRegistry instance from an
ExchangeConfig.  The registry receives all of its settings explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .config.loader import ExchangeConfig
from .contracts.state import Chain
from .crypto.address import normalize_address
from .exchange.approval import ApprovedTokenManager
from .exchange.factory import PairRegistry
from .logger import LogManager, get_logger


@dataclass
class Deployment:
    chain: Chain
    registry: PairRegistry
    token_manager: Optional[ApprovedTokenManager] = None


def configure_logging(config: ExchangeConfig) -> None:
    """Apply the [logging] section. No-op once logging is configured."""
    section = config.logging
    LogManager().configure(
        log_level=section.level,
        log_file=Path(section.log_file) if section.log_file else None,
        file_output=section.file_output,
    )


def deploy_exchange(config: Optional[ExchangeConfig], deployer: str) -> Deployment:
    """
    Deploy a registry (and optionally an approval manager) on a new chain.

    Args:
        config: Deployment configuration; None means defaults
        deployer: Account deploying the contracts; becomes the fee setter
            when the config names none

    Raises:
        ConfigurationError: if the configuration is invalid
    """
    config = config or ExchangeConfig()
    config.validate()
    configure_logging(config)

    deployer = normalize_address(deployer)
    chain = Chain(chain_id=config.chain.chain_id, timestamp=config.chain.genesis_timestamp)

    token_manager = None
    manager_address = config.factory.approved_token_manager or None
    if config.factory.deploy_token_manager:
        token_manager = ApprovedTokenManager.deploy(chain, deployer)
        manager_address = token_manager.address

    registry = PairRegistry.deploy(
        chain,
        deployer,
        fee_to_setter=config.factory.fee_to_setter or deployer,
        fee_to=config.factory.fee_to or None,
        approved_token_manager=manager_address,
    )
    get_logger(__name__).info(
        "Deployed PairRegistry at %s on chain %d (fee setter %s)",
        registry.address, chain.chain_id, registry.fee_to_setter,
    )
    return Deployment(chain=chain, registry=registry, token_manager=token_manager)
