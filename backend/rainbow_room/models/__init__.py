from .catalog import (
    Location,
    Item,
    ItemSize,
    Category,
    Size,
    CategorySize,
    ItemDetail,
    CONDITIONS,
    CONDITION_NEW,
    CONDITION_GENTLY_USED,
    CONDITION_HEAVILY_USED,
    NO_SIZE_LABEL,
)
from .ledger import (
    InventoryTransaction,
    TRANSACTION_TYPES,
    TX_CHECKOUT,
    TX_ADDITION,
    TX_TRANSFER_OUT,
    TX_TRANSFER_IN,
    TX_MANUAL_ADJUSTMENT,
)
from .checkouts import Checkout, CheckoutLine
from .volunteers import VolunteerSession

__all__ = [
    'Location', 'Item', 'ItemSize',
    'Category', 'Size', 'CategorySize', 'ItemDetail',
    'CONDITIONS', 'CONDITION_NEW', 'CONDITION_GENTLY_USED', 'CONDITION_HEAVILY_USED', 'NO_SIZE_LABEL',
    'InventoryTransaction', 'TRANSACTION_TYPES',
    'TX_CHECKOUT', 'TX_ADDITION', 'TX_TRANSFER_OUT', 'TX_TRANSFER_IN', 'TX_MANUAL_ADJUSTMENT',
    'Checkout', 'CheckoutLine',
    'VolunteerSession',
]
