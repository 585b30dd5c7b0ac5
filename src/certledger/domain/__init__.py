"""Domain layer for certledger application."""

__all__ = [
    "AccountLifecycle",
    "AccountService",
    "CreditGuard",
    "PartnerService",
    "PendingSweeper",
    "PricingService",
    "ProvisioningSaga",
    "RefundEngine",
]

_SERVICES = {
    "AccountLifecycle": "certledger.domain.lifecycle",
    "AccountService": "certledger.domain.account",
    "CreditGuard": "certledger.domain.credit",
    "PartnerService": "certledger.domain.partner",
    "PendingSweeper": "certledger.domain.sweeper",
    "PricingService": "certledger.domain.pricing",
    "ProvisioningSaga": "certledger.domain.provisioning",
    "RefundEngine": "certledger.domain.refund",
}


# Services are imported lazily: the database and provider layers import
# entities and errors from this package.
def __getattr__(name):
    if name in _SERVICES:
        import importlib

        return getattr(importlib.import_module(_SERVICES[name]), name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
