"""
Exceptions raised by graph store backends.

All of them derive from GraphStoreError and always propagate to the caller.
"""


class GraphStoreError(Exception):
    """Base class for graph store failures.

    Attributes:
        message: Explanation of the error
        backend: The store backend that raised (if known)
    """

    def __init__(self, message: str, backend: str | None = None):
        self.message = message
        self.backend = backend

        full_message = message
        if backend:
            full_message = f"{message} [backend={backend}]"

        super().__init__(full_message)


class NotConnectedError(GraphStoreError):
    """Raised when a store operation is attempted before connect()."""

    def __init__(self, backend: str | None = None):
        super().__init__("Not connected to graph store", backend)


class StoreConnectionError(GraphStoreError):
    """Raised when the backend is unreachable or rejects the session.

    Attributes:
        uri: The endpoint that was contacted (if known)
    """

    def __init__(self, message: str, backend: str | None = None, uri: str | None = None):
        self.uri = uri
        if uri:
            message = f"{message} (uri={uri})"
        super().__init__(message, backend)


class PropertySerializationError(GraphStoreError):
    """Raised when a property map cannot be encoded or decoded.

    Attributes:
        owner_id: Id of the node or edge whose properties failed (if known)
    """

    def __init__(self, message: str, owner_id: str | None = None):
        self.owner_id = owner_id
        if owner_id:
            message = f"{message} [id={owner_id}]"
        super().__init__(message)
