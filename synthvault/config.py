"""
Configuration management for the synthetic-asset engine.
"""
import json
import os
from dataclasses import dataclass, asdict

from synthvault.constants import (
    COLLATERAL_RATIO,
    EXPIRY_BLOCKS,
    LIQUIDATION_THRESHOLD,
    MAXIMUM_PRICE,
    MINIMUM_MINT,
    PRICE_SCALE,
)


@dataclass
class ProtocolConfig:
    """Economic parameters."""
    chain_id: int = 1
    expiry_blocks: int = EXPIRY_BLOCKS
    maximum_price: int = MAXIMUM_PRICE
    minimum_mint: int = MINIMUM_MINT
    collateral_ratio: int = COLLATERAL_RATIO  # percent required at mint
    liquidation_threshold: int = LIQUIDATION_THRESHOLD  # percent
    price_scale: int = PRICE_SCALE

    def validate(self):
        if self.expiry_blocks < 0:
            raise ValueError("expiry_blocks cannot be negative")
        if self.maximum_price <= 1:
            raise ValueError("maximum_price must leave room for a valid price")
        if self.minimum_mint <= 0:
            raise ValueError("minimum_mint must be positive")
        if self.liquidation_threshold <= 0:
            raise ValueError("liquidation_threshold must be positive")
        if self.collateral_ratio < self.liquidation_threshold:
            raise ValueError(
                "collateral_ratio must not be below liquidation_threshold"
            )
        if self.price_scale != PRICE_SCALE:
            raise ValueError(f"price_scale is fixed at {PRICE_SCALE}")


@dataclass
class DatabaseConfig:
    """Database configuration."""
    path: str = "./synthvault_data"
    write_buffer_size: int = 64 * 1024 * 1024  # 64MB
    max_open_files: int = 1000
    compression: str = "snappy"


@dataclass
class MonitoringConfig:
    """Monitoring configuration."""
    enabled: bool = False
    host: str = "127.0.0.1"
    port: int = 9090


@dataclass
class OracleFeedConfig:
    """Off-chain price feed configuration."""
    api_url: str = "https://api.coingecko.com/api/v3/simple/price"
    asset_id: str = "bitcoin"
    vs_currency: str = "usd"
    timeout: float = 5.0


@dataclass
class Config:
    """Main configuration."""
    protocol: ProtocolConfig
    database: DatabaseConfig
    monitoring: MonitoringConfig
    oracle_feed: OracleFeedConfig

    @classmethod
    def default(cls) -> 'Config':
        """Create default configuration."""
        return cls(
            protocol=ProtocolConfig(),
            database=DatabaseConfig(),
            monitoring=MonitoringConfig(),
            oracle_feed=OracleFeedConfig()
        )

    @classmethod
    def from_file(cls, path: str) -> 'Config':
        """Load configuration from JSON file."""
        with open(path, 'r') as f:
            data = json.load(f)

        config = cls(
            protocol=ProtocolConfig(**data.get('protocol', {})),
            database=DatabaseConfig(**data.get('database', {})),
            monitoring=MonitoringConfig(**data.get('monitoring', {})),
            oracle_feed=OracleFeedConfig(**data.get('oracle_feed', {}))
        )
        config.protocol.validate()
        return config

    def to_file(self, path: str):
        """Save configuration to JSON file."""
        os.makedirs(os.path.dirname(path) or '.', exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'protocol': asdict(self.protocol),
            'database': asdict(self.database),
            'monitoring': asdict(self.monitoring),
            'oracle_feed': asdict(self.oracle_feed)
        }
