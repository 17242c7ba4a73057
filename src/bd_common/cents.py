"""Integer arithmetic utilities for cents-based money and BidCoins.

All prices, amounts, and balances use int (cents; 1 BidCoin = 1 cent).
No float, no Decimal.
"""

from src.bd_common.errors import ValidationError


def require_positive_amount(amount: object) -> int:
    """Return ``amount`` if it is a positive whole number, else raise ValidationError.

    bool is rejected explicitly (it subclasses int); floats are rejected even
    when integral so that fractional input never reaches the store.
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationError(f"Amount must be a whole number, got {amount!r}")
    if amount <= 0:
        raise ValidationError(f"Amount must be positive, got {amount}")
    return amount


def cents_to_display(cents: int) -> str:
    """Convert cents to display string: 6500 -> '$65.00', -1200 -> '-$12.00'."""
    if cents < 0:
        abs_cents = -cents
        return f"-${abs_cents // 100:,}.{abs_cents % 100:02d}"
    return f"${cents // 100:,}.{cents % 100:02d}"


def calculate_fee(amount: int, fee_rate_bps: int) -> int:
    """Calculate fee with ceiling division (platform never loses).

    fee = ceil(amount * fee_rate_bps / 10000)
    Using integer ceiling: (a + b - 1) // b
    """
    if amount == 0 or fee_rate_bps == 0:
        return 0
    return (amount * fee_rate_bps + 9999) // 10000


def calculate_reward(amount: int, rate_bps: int) -> int:
    """BidCoin reward for a settled price, rounded half up.

    10000 cents at 100 bps -> 100 coins; 150 cents at 100 bps -> 2 coins.
    """
    if amount <= 0 or rate_bps <= 0:
        return 0
    return (amount * rate_bps + 5000) // 10000
