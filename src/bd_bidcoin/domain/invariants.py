"""Wallet invariant: balance == SUM(delta) of its ledger entries, and >= 0."""
import logging

from src.bd_bidcoin.domain.models import BalanceAudit

logger = logging.getLogger(__name__)


def check_balance_audit(audit: BalanceAudit) -> list[str]:
    """Return violation strings for one wallet (empty list when healthy)."""
    violations: list[str] = []
    if audit.balance < 0:
        violations.append(f"wallet {audit.user_id}: negative balance {audit.balance}")
    if not audit.consistent:
        violations.append(
            f"wallet {audit.user_id}: balance({audit.balance}) "
            f"!= ledger_sum({audit.ledger_sum})"
        )
    for msg in violations:
        logger.error(msg)
    return violations

