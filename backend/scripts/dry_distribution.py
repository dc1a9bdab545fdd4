"""
Fee Distribution Preview

Asks a running Coinflip engine API what distributing one denomination's
unpaid fees would pay right now, without moving anything:
- Team and reserve shares (reserve after the bank floor guard)
- Holder pool, total holder shares and fees per share
- What the holders would actually receive after per-holder flooring

Usage:
    python scripts/dry_distribution.py ustars --api http://localhost:8000
"""

import logging
import os
import sys
from typing import Dict

import httpx
from dotenv import load_dotenv

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from utils import format_units

load_dotenv()

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

API_URL = os.getenv("COINFLIP_API_URL", "http://localhost:8000")


def fetch_dry_distribution(api_url: str, denom: str, timeout: float = 30.0) -> Dict:
    """Fetch the dry-run distribution for `denom`.

    Args:
        api_url: Base URL of the engine API
        denom: Denomination to preview
        timeout: Request timeout in seconds

    Returns:
        Dry distribution as returned by the API
    """
    with httpx.Client(base_url=api_url, timeout=timeout) as client:
        response = client.get(f"/api/fees/{denom}/dry-distribution")

    if response.status_code != 200:
        detail = response.json().get("detail", response.text)
        raise RuntimeError(f"API error {response.status_code}: {detail}")

    return response.json()


def print_distribution_preview(denom: str, dry: Dict):
    """Print a preview of the distribution."""
    total = int(dry["total_fees"])
    team = int(dry["team_total_fee"])
    reserve = int(dry["reserve_total_fee"])
    holders = int(dry["holders_total_fee"])
    paid = int(dry["pay_to_holders"])

    print("\n" + "=" * 70)
    print(f"FEE DISTRIBUTION PREVIEW ({denom})")
    print(f"Unpaid fees: {format_units(total, denom)}")
    print("=" * 70)

    print(f"\n{'Destination':<20}{'Amount':>25}")
    print("-" * 70)
    print(f"{'Team':<20}{format_units(team, denom):>25}")
    print(f"{'Reserve':<20}{format_units(reserve, denom):>25}")
    print(f"{'Holders (pool)':<20}{format_units(holders, denom):>25}")
    print(f"{'Holders (paid)':<20}{format_units(paid, denom):>25}")

    print("\n" + "-" * 70)
    print(f"Holders: {dry['number_of_holders']}")
    print(f"Total shares: {dry['holders_total_shares']}")
    print(f"Fees per share: {dry['fees_per_token']}")
    print(f"Holder rounding left in ledger: {format_units(holders - paid, denom)}")
    print("=" * 70)


# CLI interface
if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Preview fee distribution for one denomination")
    parser.add_argument("denom", type=str, help="Denomination to preview, e.g. ustars")
    parser.add_argument("--api", type=str, default=API_URL, help="Engine API base URL")

    args = parser.parse_args()

    try:
        result = fetch_dry_distribution(args.api, args.denom)
    except (httpx.HTTPError, RuntimeError) as e:
        logger.error(f"Failed to fetch dry distribution: {e}")
        sys.exit(1)

    print_distribution_preview(args.denom, result)
