"""Exception hierarchy for learnsql.

Query and batch faults never escape the adapter as exceptions; these types cover
the key-value store, whose write faults are swallowed by ``storage_set`` but are
visible to callers using ``LocalStorage`` directly.
"""


class LearnSQLError(Exception):
    """Base class for errors raised by learnsql itself."""


class StorageError(LearnSQLError):
    """Key-value store rejected an operation."""


class QuotaExceededError(StorageError):
    """Write would push the key-value store past its configured quota."""

    def __init__(self, needed: int, quota: int):
        super().__init__(f"Storage quota exceeded: {needed} chars needed, quota is {quota}")
        self.needed = needed
        self.quota = quota
