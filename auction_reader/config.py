#!/usr/bin/env python3
"""
Configuration management for the auction read layer.
Supports development (local Hardhat/Anvil node) and production modes.
"""

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from dotenv import load_dotenv
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_IPFS_GATEWAY = "https://ipfs.io"
DEFAULT_THUMBNAIL_GATEWAY = "https://gateway.pinata.cloud"
DEPLOYED_TOKEN_ADDRESS = "0x3BA691f5591aD777Cc4769306d9eA4767a0B6DB5"  # Lisk Sepolia

LOCAL_HOSTNAMES = {"localhost", "127.0.0.1", "::1", "0.0.0.0"}


class AppMode(str, Enum):
    """Application running modes"""
    DEV = "dev"
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    PROD = "prod"  # Alias for production


class Settings(BaseSettings):
    """Settings read from the environment (and an optional .env file)"""

    app_mode: AppMode = AppMode.DEV

    # Chain access
    rpc_url: str = "http://localhost:8545"
    registry_address: Optional[str] = None

    # Host the UI is served from; decides which token address applies
    app_host: Optional[str] = None
    deployed_token_address: str = DEPLOYED_TOKEN_ADDRESS
    deployments_dir: str = "deployments"

    # Metadata gateways
    ipfs_gateway: str = Field(
        DEFAULT_IPFS_GATEWAY,
        validation_alias=AliasChoices("ipfs_gateway", "pinata_gateway"),
    )
    thumbnail_gateway: str = DEFAULT_THUMBNAIL_GATEWAY
    metadata_timeout: float = 10.0

    log_level: str = "INFO"

    @field_validator('ipfs_gateway', 'thumbnail_gateway', mode='before')
    @classmethod
    def parse_gateway(cls, v, info):
        """Empty gateway falls back to the public default; trailing slashes are dropped"""
        if v is None or str(v).strip() == '':
            return DEFAULT_IPFS_GATEWAY if info.field_name == 'ipfs_gateway' else DEFAULT_THUMBNAIL_GATEWAY
        return str(v).strip().rstrip('/')

    @field_validator('registry_address', 'app_host', mode='before')
    @classmethod
    def parse_optional(cls, v):
        """Handle empty strings for optional fields"""
        if v is None or str(v).strip() == '':
            return None
        return str(v).strip()

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "case_sensitive": False, "extra": "ignore"}


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get application settings"""
    return settings


def is_development_mode(current: Optional[Settings] = None) -> bool:
    """Check if running in development mode"""
    current = current or settings
    return current.app_mode in [AppMode.DEVELOPMENT, AppMode.DEV]


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging for scripts embedding the read layer"""
    level_str = str(level or settings.log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level_str, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


# Network definitions with metadata
SUPPORTED_NETWORKS = {
    "local": {
        "chain_id": 31337,
        "name": "Hardhat Local",
        "deployments_network": "localhost",
    },
    "liskSepolia": {
        "chain_id": 4202,
        "name": "Lisk Sepolia",
        "deployments_network": "liskSepolia",
    },
}


def is_local_host(hostname: Optional[str]) -> bool:
    """True for localhost and loopback hostnames"""
    if not hostname:
        return False
    host = hostname.strip().lower().strip('[]')
    return host in LOCAL_HOSTNAMES or host.startswith("127.")


def network_for_host(hostname: Optional[str]) -> str:
    """Pick the network name from the hostname the UI runs on"""
    return "local" if is_local_host(hostname) else "liskSepolia"


def get_network_config(network_name: str) -> dict:
    """Get configuration for a specific network"""
    if network_name not in SUPPORTED_NETWORKS:
        raise ValueError(f"Unsupported network: {network_name}")
    return SUPPORTED_NETWORKS[network_name].copy()


def effective_host(current: Optional[Settings] = None) -> Optional[str]:
    """APP_HOST if set, otherwise the RPC URL's hostname"""
    current = current or settings
    return current.app_host or urlparse(current.rpc_url).hostname


def load_deployment_address(
    contract_name: str,
    network: str = "localhost",
    deployments_dir: Optional[str] = None,
) -> Optional[str]:
    """Read a contract address from a hardhat-deploy artifact (<dir>/<network>/<name>.json)"""
    base = Path(deployments_dir or settings.deployments_dir)
    path = base / network / f"{contract_name}.json"
    if not path.exists():
        logger.debug(f"No deployment artifact at {path}")
        return None
    try:
        with open(path, 'r') as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning(f"Could not load deployment info from {path}: {e}")
        return None
    address = data.get('address') if isinstance(data, dict) else None
    return address or None


def resolve_token_address(hostname: Optional[str] = None, current: Optional[Settings] = None) -> Optional[str]:
    """Token contract address for the network the given host implies.

    Local hosts use the locally deployed test token (None until it is deployed);
    any other host uses the fixed deployed address.
    """
    current = current or settings
    host = hostname if hostname is not None else effective_host(current)
    network_name = network_for_host(host)
    if network_name == "local":
        network = get_network_config(network_name)
        return load_deployment_address("IDRX", network["deployments_network"], current.deployments_dir)
    return current.deployed_token_address


def resolve_registry_address(current: Optional[Settings] = None) -> Optional[str]:
    """REGISTRY_ADDRESS if configured, otherwise the deployed AuctionFactory artifact.

    Artifacts are only consulted in development mode; production must set
    REGISTRY_ADDRESS explicitly.
    """
    current = current or settings
    if current.registry_address:
        return current.registry_address
    if not is_development_mode(current):
        logger.warning("REGISTRY_ADDRESS is not set; deployment artifacts are ignored in production mode")
        return None
    network = get_network_config(network_for_host(effective_host(current)))
    return load_deployment_address("AuctionFactory", network["deployments_network"], current.deployments_dir)

