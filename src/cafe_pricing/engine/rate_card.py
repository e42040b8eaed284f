"""
Rate Card - the per device type / player count price tables.

Every tiered device owns one table per occupancy band. A table holds the
price of each billed-time band (15/30/45/60 minutes) and the hourly rate
used past the first hour. The tables live in ``data/rate_card.csv`` so the
full business ruleset can be audited and edited in one place.
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import pandas as pd

from ..config.settings import get_settings
from .errors import RateCardError, UnknownDeviceTypeError
from .models import DeviceType

BAND_MINUTES = (15, 30, 45, 60)
PRICE_COLUMNS = ['min_15', 'min_30', 'min_45', 'min_60']
REQUIRED_COLUMNS = ['device_type', 'players', *PRICE_COLUMNS]


@dataclass(frozen=True)
class BandPrices:
    """Prices of one (device type, player count) pair."""
    min_15: float
    min_30: float
    min_45: float
    min_60: float
    per_hour: float

    def price_for(self, billed_minutes: int) -> float:
        """
        Price for an already rounded number of billed minutes.

        Within the first hour the band price applies as-is; past it the
        hourly rate is extended linearly.
        """
        if billed_minutes <= 0:
            return 0.0
        if billed_minutes <= 15:
            return self.min_15
        if billed_minutes <= 30:
            return self.min_30
        if billed_minutes <= 45:
            return self.min_45
        if billed_minutes <= 60:
            return self.min_60
        return self.per_hour * (billed_minutes / 60)

    def as_list(self) -> list[float]:
        return [self.min_15, self.min_30, self.min_45, self.min_60]


@dataclass
class ValidationResult:
    """Result of rate card validation."""
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class RateCard:
    """Lookup structure: device type → player count → BandPrices."""

    def __init__(self, tables: dict[str, dict[int, BandPrices]]):
        self.tables = tables

    @classmethod
    def from_csv(cls, path: Path) -> 'RateCard':
        """
        Load and validate a rate card CSV.

        Raises:
            FileNotFoundError: the CSV does not exist.
            RateCardError: the CSV is malformed or fails validation.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Rate card not found at {path}.")

        df = pd.read_csv(path, dtype=str).fillna('')
        card = cls.from_frame(df)

        result = card.validate()
        if not result.valid:
            raise RateCardError(f"Invalid rate card {path.name}: " + "; ".join(result.errors))
        return card

    @classmethod
    def from_frame(cls, df: pd.DataFrame) -> 'RateCard':
        """Build a rate card from a frame with the rate_card.csv columns."""
        df = df.copy()
        df.columns = [str(c).strip().lower() for c in df.columns]

        missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
        if missing:
            raise RateCardError(f"Rate card is missing columns: {', '.join(missing)}")
        if 'per_hour' not in df.columns:
            df['per_hour'] = ''

        tables: dict[str, dict[int, BandPrices]] = {}
        for idx, row in df.iterrows():
            device = DeviceType.normalize(row['device_type'])
            if not device:
                raise RateCardError(f"Row {idx}: device_type is empty")

            players = pd.to_numeric(row['players'], errors='coerce')
            if pd.isna(players) or int(players) != players or players < 1:
                raise RateCardError(f"Row {idx}: players must be a positive whole number, got '{row['players']}'")
            players = int(players)

            prices = [pd.to_numeric(row[c], errors='coerce') for c in PRICE_COLUMNS]
            bad = [c for c, p in zip(PRICE_COLUMNS, prices) if pd.isna(p)]
            if bad:
                raise RateCardError(f"Row {idx} ({device}/{players}): unparseable price in {', '.join(bad)}")

            per_hour = pd.to_numeric(row['per_hour'], errors='coerce')
            if pd.isna(per_hour):
                per_hour = prices[3]

            table = tables.setdefault(device, {})
            if players in table:
                raise RateCardError(f"Duplicate rate card entry for {device} with {players} player(s)")
            table[players] = BandPrices(*(float(p) for p in prices), per_hour=float(per_hour))

        return cls(tables)

    @property
    def device_types(self) -> list[str]:
        return sorted(self.tables)

    def has_device(self, device_type: str) -> bool:
        return DeviceType.normalize(device_type) in self.tables

    def lookup(self, device_type: str, player_count: int) -> BandPrices:
        """
        Resolve the band prices for a device and player count.

        A player count the table does not list falls back to the
        single-player prices.

        Raises:
            UnknownDeviceTypeError: no table for the device type.
            RateCardError: neither the player count nor a single-player row exists.
        """
        device = DeviceType.normalize(device_type)
        table = self.tables.get(device)
        if not table:
            raise UnknownDeviceTypeError(device)

        bands = table.get(player_count) or table.get(1)
        if bands is None:
            raise RateCardError(f"No pricing data for {device} with {player_count} players")
        return bands

    def hourly_rate(self, device_type: str, player_count: int) -> float:
        """60-minute price for a device/player count, 0 when unknown."""
        try:
            return self.lookup(device_type, player_count).min_60
        except (UnknownDeviceTypeError, RateCardError):
            return 0.0

    def validate(self) -> ValidationResult:
        """Check the card for unusable or suspicious prices."""
        result = ValidationResult(valid=True)

        if not self.tables:
            result.errors.append("Rate card has no entries")
            result.valid = False

        for device, table in sorted(self.tables.items()):
            if 1 not in table:
                result.warnings.append(f"{device} has no single-player prices to fall back on")

            for players, bands in sorted(table.items()):
                label = f"{device}/{players}"
                prices = bands.as_list() + [bands.per_hour]
                if any(p < 0 for p in prices):
                    result.errors.append(f"{label}: prices must not be negative")
                    result.valid = False
                    continue

                steps = bands.as_list()
                if any(later < earlier for earlier, later in zip(steps, steps[1:])):
                    result.warnings.append(f"{label}: band prices decrease with time")
                if bands.per_hour != bands.min_60:
                    result.warnings.append(
                        f"{label}: hourly rate {bands.per_hour:g} differs from 60-minute price {bands.min_60:g}"
                    )

        return result

    def to_frame(self) -> pd.DataFrame:
        """Render the card with one row per (device type, player count)."""
        rows = []
        for device, table in sorted(self.tables.items()):
            for players, bands in sorted(table.items()):
                rows.append({
                    'device_type': device,
                    'players': players,
                    'min_15': bands.min_15,
                    'min_30': bands.min_30,
                    'min_45': bands.min_45,
                    'min_60': bands.min_60,
                    'per_hour': bands.per_hour,
                })
        return pd.DataFrame(rows, columns=['device_type', 'players', *PRICE_COLUMNS, 'per_hour'])


def load_rate_card(path: Optional[Path] = None) -> RateCard:
    """Load the configured rate card."""
    return RateCard.from_csv(path or get_settings().rate_card_csv)
