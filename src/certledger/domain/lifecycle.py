"""Account lifecycle driven by domain population."""

from datetime import datetime, timedelta
from typing import Callable

import structlog
from dateutil.relativedelta import relativedelta

from certledger.database.base import LedgerStore
from certledger.domain.entities import Account, AccountStatus, Severity, utcnow

logger = structlog.get_logger(__name__)

ABUSE_WINDOW = timedelta(days=30)
ABUSE_THRESHOLD = 3

ACTIVATABLE_STATUSES = frozenset({AccountStatus.PENDING_START, AccountStatus.INACTIVE})
FROZEN_STATUSES = frozenset({AccountStatus.SUSPENDED, AccountStatus.TERMINATED})


class AccountLifecycle:
    """Moves accounts between pending_start, active and inactive.

    An account becomes active when its first domain is added and falls back
    to inactive when its last active domain is removed. Suspended and
    terminated accounts are only changed by administrative actions.
    """

    def __init__(self, store: LedgerStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    def activate(self, account: Account, actor: str, triggered_by: str) -> bool:
        """Activate an account and start its subscription period.

        Args:
            account: Account to activate
            actor: Who caused the activation
            triggered_by: Short description of the triggering operation

        Returns:
            True if the account was activated, False if its status does not allow it
        """
        if account.status not in ACTIVATABLE_STATUSES:
            return False

        now = self.clock()
        end_date = now + relativedelta(years=account.subscription_years)
        self.store.update_account(
            account.id,
            {"status": AccountStatus.ACTIVE, "start_date": now, "end_date": end_date},
        )

        action = "account_reactivated" if account.status == AccountStatus.INACTIVE else "account_activated"
        self.store.append_audit(
            actor,
            action,
            "account",
            account.id,
            {
                "previous_status": str(account.status),
                "new_status": str(AccountStatus.ACTIVE),
                "start_date": now.isoformat(),
                "end_date": end_date.isoformat(),
                "subscription_years": account.subscription_years,
                "triggered_by": triggered_by,
            },
            created_at=now,
        )
        logger.info("Account activated", account_id=account.id, action=action, end_date=end_date.isoformat())
        return True

    def after_removal(self, account: Account, actor: str, triggered_by: str) -> bool:
        """Deactivate the account if its last active domain is gone.

        Returns:
            True if the account was deactivated
        """
        current = self.store.get_account(account.id) or account
        if current.status in FROZEN_STATUSES or current.status == AccountStatus.INACTIVE:
            return False
        if self.store.count_active_domains(current.id) > 0:
            return False
        self.deactivate(current, actor, triggered_by)
        return True

    def deactivate(self, account: Account, actor: str, triggered_by: str) -> None:
        """Mark the account inactive, clear its subscription period and check for abuse."""
        now = self.clock()
        self.store.update_account(
            account.id,
            {"status": AccountStatus.INACTIVE, "start_date": None, "end_date": None},
        )
        self.store.append_audit(
            actor,
            "account_deactivated",
            "account",
            account.id,
            {
                "previous_status": str(account.status),
                "new_status": str(AccountStatus.INACTIVE),
                "reason": "no_active_domains",
                "triggered_by": triggered_by,
            },
            created_at=now,
        )
        logger.info("Account deactivated", account_id=account.id, triggered_by=triggered_by)
        self.detect_abuse(account, actor)

    def detect_abuse(self, account: Account, actor: str) -> bool:
        """Flag accounts that collect refunds repeatedly.

        Only records a high-severity audit entry; nothing is blocked.

        Returns:
            True if the account was flagged
        """
        now = self.clock()
        refunds = self.store.count_successful_refunds(account.id, now - ABUSE_WINDOW)
        if refunds < ABUSE_THRESHOLD:
            return False

        self.store.append_audit(
            actor,
            "high_risk_refund_pattern",
            "account",
            account.id,
            {
                "refund_count": refunds,
                "window_days": ABUSE_WINDOW.days,
                "threshold": ABUSE_THRESHOLD,
            },
            severity=Severity.HIGH,
            created_at=now,
        )
        logger.warning("High-risk refund pattern detected", account_id=account.id, refund_count=refunds)
        return True
