"""
Exceptions raised by the weekend orchestrator.
"""


class PaddockError(Exception):
    """Base class for paddock errors."""


class MissingDataError(PaddockError):
    """A referenced season, race, team or driver record is absent."""

    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} not found: {record_id}")
        self.kind = kind
        self.record_id = record_id
