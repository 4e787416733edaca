"""Service layer exports."""

from .callback_reconciler import CallbackReconciler, ReconciliationResult
from .context_cipher import ContextCipher
from .flow_context import (
    FlowContextStore,
    InMemoryFlowContextStore,
    SQLiteFlowContextStore,
)
from .identity_delegate import IdentityDelegate
from .payment_gate import PaymentGate, RedirectPolicy
from .request_capture import capture_authorization_request

__all__ = [
    "CallbackReconciler",
    "ContextCipher",
    "FlowContextStore",
    "IdentityDelegate",
    "InMemoryFlowContextStore",
    "PaymentGate",
    "ReconciliationResult",
    "RedirectPolicy",
    "SQLiteFlowContextStore",
    "capture_authorization_request",
]
