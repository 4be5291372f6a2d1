class LaundryError(Exception):
    """Base class for errors raised by the laundry services."""


class ValidationFailed(LaundryError):
    """Input rejected before any database call."""


class RecordNotFound(LaundryError):
    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} not found")
        self.kind = kind
        self.record_id = record_id
