"""
Centralized settings and path configuration for the cafe pricing core.
"""
import os
from pathlib import Path
from dataclasses import dataclass
from typing import Optional


RATE_CARD_ENV_VAR = "CAFE_PRICING_RATE_CARD"


def get_package_root() -> Path:
    """Get the cafe_pricing package directory."""
    return Path(__file__).resolve().parent.parent


@dataclass
class Settings:
    """Application settings with sensible defaults."""
    
    # Rate card (price tables per device type / player count)
    rate_card_csv: Path
    
    # Billing rules
    free_tier_minutes: int = 7
    billing_increment_minutes: int = 15
    
    # Flat party-rate devices are billed per player, never by time
    flat_rate_per_player: float = 50.0
    flat_rate_device_types: tuple = ('FRAME',)
    
    # Display
    currency_symbol: str = "₹"
    
    log_level: str = "INFO"
    
    @classmethod
    def load(cls, rate_card_csv: Optional[Path] = None) -> 'Settings':
        """Load settings, honouring the rate card environment override."""
        env_path = os.environ.get(RATE_CARD_ENV_VAR)
        if rate_card_csv is None and env_path:
            rate_card_csv = Path(env_path)
        
        return cls(
            rate_card_csv=rate_card_csv or get_package_root() / 'data' / 'rate_card.csv',
            log_level=os.environ.get("CAFE_PRICING_LOG_LEVEL", "INFO").upper(),
        )


# Default settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings
