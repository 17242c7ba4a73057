"""Status mapping rules between the processor and local mirrors."""

import logging

from src.bd_common.enums import OnboardingStatus, PaymentStatus
from src.bd_payment.domain.models import ProcessorAccount

logger = logging.getLogger(__name__)

_PENDING_INTENT_STATUSES = frozenset({
    "requires_payment_method",
    "requires_confirmation",
    "requires_action",
    "processing",
    "requires_capture",
})

FAILED_REFUND_STATUSES = frozenset({"failed", "canceled"})


def map_intent_status(processor_status: str) -> PaymentStatus:
    """Map a processor payment-intent status onto the local state machine.

    Nothing is treated as settled unless the processor says "succeeded";
    unrecognised values stay in REQUIRES_CONFIRMATION.
    """
    if processor_status == "succeeded":
        return PaymentStatus.SUCCEEDED
    if processor_status == "canceled":
        return PaymentStatus.FAILED
    if processor_status not in _PENDING_INTENT_STATUSES:
        logger.warning("Unrecognised payment intent status: %s", processor_status)
    return PaymentStatus.REQUIRES_CONFIRMATION


def derive_onboarding_status(account: ProcessorAccount) -> OnboardingStatus:
    if account.charges_enabled and account.details_submitted:
        return OnboardingStatus.ACTIVE
    reason = account.disabled_reason or ""
    if reason.startswith("rejected.") or reason == "platform_paused":
        return OnboardingStatus.RESTRICTED
    if account.details_submitted:
        return OnboardingStatus.ONBOARDING
    return OnboardingStatus.PENDING
