#!/usr/bin/env python
"""
Check pipeline - validates the rate card and runs the pricing tests.

Usage:
    python scripts/check_rate_card.py [path/to/rate_card.csv]
"""
import logging
import subprocess
import sys
from pathlib import Path

# Add src to path
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from cafe_pricing.config.settings import get_settings
from cafe_pricing.engine.errors import PricingError
from cafe_pricing.engine.rate_card import RateCard


def main():
    settings = get_settings()
    logging.basicConfig(level=settings.log_level, format="%(levelname)s %(name)s: %(message)s")

    path = Path(sys.argv[1]) if len(sys.argv) > 1 else settings.rate_card_csv

    print("=" * 60)
    print("CAFE PRICING CHECK")
    print("=" * 60)
    print()
    
    print(f"[1/2] Validating rate card {path}...")
    try:
        card = RateCard.from_csv(path)
    except (FileNotFoundError, PricingError) as e:
        print(f"\n❌ RATE CARD INVALID\n  ERROR: {e}")
        sys.exit(1)

    result = card.validate()
    for warning in result.warnings:
        print(f"  WARNING: {warning}")
    
    print()
    print("[2/2] Running pricing tests...")
    
    test_result = subprocess.run(
        [sys.executable, '-m', 'pytest', 'tests', '-q', '--tb=short'],
        cwd=Path(__file__).parent.parent
    )
    
    if test_result.returncode != 0:
        print("\n❌ TESTS FAILED")
        sys.exit(1)
    
    print()
    print("=" * 60)
    print("✅ CHECK COMPLETE")
    print("=" * 60)
    print()
    print("Rate card:")
    print(card.to_frame().to_string(index=False))


if __name__ == "__main__":
    main()
