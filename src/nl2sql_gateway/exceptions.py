"""Exceptions raised by the gateway core."""


class GatewayError(Exception):
    """Base class for gateway errors."""


class NotFoundError(GatewayError):
    """A configuration record with the given id does not exist."""

    def __init__(self, kind: str, record_id: str) -> None:
        super().__init__(f"{kind} with id {record_id} not found")
        self.kind = kind
        self.record_id = record_id
