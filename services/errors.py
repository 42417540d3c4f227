"""Error types raised by the aggregation services.

Routes map ValidationError to 400 and NotFoundError to 404. Duplicate
same-day completions are not errors; they are stored as replays.
"""


class ValidationError(ValueError):
    """Malformed or out-of-range submission. Raised before anything is written."""


class NotFoundError(LookupError):
    """Referenced learner or unit does not exist. Raised before anything is written."""

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")
