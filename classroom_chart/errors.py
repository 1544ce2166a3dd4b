from __future__ import annotations


class SeatingChartError(Exception):
    pass


class ValidationError(SeatingChartError):
    """Bad input from the user, e.g. saving without a layout name."""


class SnapshotError(ValidationError):
    pass


class ConflictError(SeatingChartError):
    """Seat already taken, or the student is already seated elsewhere."""


class PersistenceError(SeatingChartError):
    pass


class LocalPersistenceError(PersistenceError):
    pass


class RemotePersistenceError(PersistenceError):
    pass


class ExportError(SeatingChartError):
    pass
