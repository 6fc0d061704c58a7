"""Application-level errors (records the engine never sees)."""


class NotFoundError(LookupError):
    """A cargo or assignment the caller referenced does not exist."""

    def __init__(self, resource: str, resource_id: str):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} {resource_id} not found")
