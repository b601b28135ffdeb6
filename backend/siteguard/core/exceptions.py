"""Errors raised while applying offline sync operations.

All of them are caught at the per-operation boundary and reported back to
the client as an itemised error result; none of them fail a whole batch.
"""


class SyncError(Exception):
    """Base class for per-operation sync failures."""


class UnsupportedOperation(SyncError):
    """Unknown entity kind, or an op type the entity does not support."""


class PayloadValidationError(SyncError):
    """Operation payload does not match the schema for its entity kind."""


class EntityNotFound(SyncError):
    def __init__(self, entity: str, entity_id: object) -> None:
        super().__init__(f"{entity} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class VersionConflict(SyncError):
    def __init__(self, entity: str, entity_id: object, expected: int, actual: int) -> None:
        super().__init__(
            f"Version conflict on {entity} {entity_id}: client expected {expected}, server has {actual}"
        )
        self.entity = entity
        self.entity_id = entity_id
        self.expected = expected
        self.actual = actual


class AttachmentReconciliationError(SyncError):
    """Placeholder creation failed for a single attachment entry."""
