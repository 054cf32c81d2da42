"""CRUD 操作模块"""
from .entitlement import (
    apply_update as apply_entitlement_update,
)
from .entitlement import (
    consume_credit,
    consume_free_use,
    increment_free_used,
)
from .entitlement import (
    get as get_entitlement,
)
from .entitlement import (
    get_or_create as get_or_create_entitlement,
)
from .transaction import (
    exists as transaction_exists,
)
from .transaction import (
    list_for_install as list_transactions,
)
from .transaction import (
    record as record_transaction,
)

__all__ = [
    "apply_entitlement_update",
    "consume_credit",
    "consume_free_use",
    "increment_free_used",
    "get_entitlement",
    "get_or_create_entitlement",
    "transaction_exists",
    "list_transactions",
    "record_transaction",
]
