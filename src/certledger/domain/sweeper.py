"""Recovery of reservations left in pending_api.

A crash between the provider call and reconcile leaves an add_domain
transaction in ``pending_api`` with its charge still counted against the
partner's credit. The sweeper asks the provider whether the domain exists
and settles the reservation either way.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Optional

import structlog

from certledger.database.base import LedgerStore
from certledger.domain.entities import DomainStatus, Transaction, TransactionStatus, utcnow
from certledger.domain.errors import LedgerError, ProviderError
from certledger.domain.lifecycle import ACTIVATABLE_STATUSES, AccountLifecycle
from certledger.provider.client import ProvisioningClient

logger = structlog.get_logger(__name__)

DEFAULT_STALE_AFTER = timedelta(minutes=10)
DEFAULT_BATCH_LIMIT = 50


@dataclass
class SweepResult:
    swept: int = 0
    committed: int = 0
    rolled_back: int = 0
    errors: int = 0
    transaction_ids: list[int] = field(default_factory=list)


class PendingSweeper:
    """Commits or rolls back stale add_domain reservations."""

    def __init__(
        self,
        store: LedgerStore,
        provider: ProvisioningClient,
        lifecycle: Optional[AccountLifecycle] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.provider = provider
        self.lifecycle = lifecycle or AccountLifecycle(store, clock=clock)
        self.clock = clock

    def sweep(
        self,
        actor: str = "system",
        older_than: timedelta = DEFAULT_STALE_AFTER,
        limit: int = DEFAULT_BATCH_LIMIT,
    ) -> SweepResult:
        """Settle every pending_api reservation older than ``older_than``.

        Args:
            actor: Recorded on the audit entries
            older_than: Minimum age of a reservation before it is considered stuck
            limit: Maximum number of reservations handled in one sweep

        Returns:
            SweepResult with counts; a failure on one reservation is counted
            in ``errors`` and the sweep continues
        """
        cutoff = self.clock() - older_than
        stale = self.store.list_stale_pending_transactions(cutoff, limit=limit)
        result = SweepResult(swept=len(stale))
        if not stale:
            logger.info("No stuck reservations found")
            return result

        logger.info("Sweeping stuck reservations", count=len(stale))
        for txn in stale:
            result.transaction_ids.append(txn.id)
            try:
                if self._settle(txn, actor):
                    result.committed += 1
                else:
                    result.rolled_back += 1
            except (LedgerError, ProviderError) as e:
                result.errors += 1
                logger.error("Could not settle reservation", transaction_id=txn.id, error=str(e))

        logger.info(
            "Sweep complete",
            swept=result.swept,
            committed=result.committed,
            rolled_back=result.rolled_back,
            errors=result.errors,
        )
        return result

    def _settle(self, txn: Transaction, actor: str) -> bool:
        """Commit or roll back one reservation. Returns True if committed."""
        domain = self.store.get_domain(txn.domain_id)
        account = self.store.get_account(txn.account_id)
        if domain is None or account is None or not account.external_id:
            raise LedgerError(f"Transaction {txn.id} is missing its domain or account data")

        present = domain.name in self.provider.list_domains(account.external_id)
        if present:
            self.store.update_domain_status(domain.id, DomainStatus.ACTIVE, order_number=txn.order_number)
            self.store.update_transaction_status(txn.id, TransactionStatus.SUCCESS)
            self.store.append_audit(
                actor,
                "zombie_commit",
                "transaction",
                txn.id,
                {"domain_name": domain.name, "domain_id": domain.id, "reason": "Found at provider"},
                created_at=self.clock(),
            )
            logger.info("Reservation committed", transaction_id=txn.id, domain=domain.name)
            current = self.store.get_account(account.id)
            if current is not None and current.status in ACTIVATABLE_STATUSES:
                self.lifecycle.activate(current, actor, triggered_by="zombie_commit")
            return True

        self.store.update_domain_status(domain.id, DomainStatus.FAILED)
        self.store.update_transaction_status(
            txn.id, TransactionStatus.FAILED, description="Failed: not found at provider after timeout"
        )
        self.store.append_audit(
            actor,
            "zombie_rollback",
            "transaction",
            txn.id,
            {"domain_name": domain.name, "domain_id": domain.id, "reason": "Not found at provider"},
            created_at=self.clock(),
        )
        logger.info("Reservation rolled back", transaction_id=txn.id, domain=domain.name)
        return False
