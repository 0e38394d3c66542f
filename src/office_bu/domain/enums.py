from enum import Enum

class TransactionType(Enum):
    """Category tag of a transaction. Everything except PAYMENT is a purchase"""
    TEA = "tea"
    COFFEE = "coffee"
    SNACKS = "snacks"
    PAYMENT = "payment" # settles the balance

    @property
    def is_expense(self) -> bool:
        return self is not TransactionType.PAYMENT


class ThemeType(Enum):
    MATCHA = "matcha"
    DARK = "dark"
    HIBISCUS = "hibiscus"
    CHAI = "chai"
    OCEAN = "ocean"


class SyncAction(Enum):
    """Actions understood by the spreadsheet webhook"""
    ADD = "add"
    BULK_ADD = "bulk_add"
    DELETE = "delete"
    BULK_DELETE = "bulk_delete"
    BULK_UPDATE = "bulk_update"
    CLEAR = "clear"


class SyncStatus(Enum):
    OFFLINE = "offline"
    SYNCING = "syncing"
    CONNECTED = "connected"
    ERROR = "error"
