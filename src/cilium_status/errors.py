"""Error types recorded in and raised around the status ledger."""

from __future__ import annotations


class StatusError(Exception):
    """A single error or warning entry in the status ledger."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        return self.message

    def __eq__(self, other: object) -> bool:
        if isinstance(other, StatusError):
            return self.message == other.message
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.message)


class FetchError(Exception):
    """Raised by a status fetcher when an agent payload cannot be retrieved."""

    def __init__(self, message: str, pod: str | None = None) -> None:
        self.pod = pod
        super().__init__(message)
