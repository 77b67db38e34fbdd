"""Domain errors raised by the core. The API layer maps them to HTTP."""

from __future__ import annotations


class ValidationError(ValueError):
    """A submitted sample was malformed or out of range.

    ``fields`` maps each offending field name to a short reason.
    """

    def __init__(self, fields: dict[str, str]) -> None:
        self.fields = dict(fields)
        names = ", ".join(sorted(self.fields))
        super().__init__(f"invalid sample fields: {names}")


class NotFoundError(LookupError):
    """No data has been received for the vehicle."""

    def __init__(self, vehicle_id: str) -> None:
        self.vehicle_id = vehicle_id
        super().__init__(f"no data for vehicle {vehicle_id!r}")


class SubscriptionClosed(Exception):
    """The subscription was cancelled and its queue is empty."""
