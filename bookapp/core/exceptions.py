"""Exceptions raised by the persistence layer."""


class StoreError(Exception):
    """The invitation store could not complete a read or write.

    Wraps the driver/ORM exception (available as ``__cause__``) and is never
    retried by the service.
    """

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"{operation} failed: {message}")
