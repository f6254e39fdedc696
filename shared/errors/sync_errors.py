"""Error taxonomy shared by the gateway client and the sync services."""


class SyncError(Exception):
    """Base class for all errors raised by this project."""


class GatewayError(SyncError):
    """A request to the remote document service failed.

    Attributes:
        status_code (int | None): HTTP status, or None for transport failures.
        url (str | None): The requested URL.
    """

    def __init__(self, message: str, status_code: int | None = None, url: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class UpstreamUnavailable(GatewayError):
    """Network failure or 5xx response that survived the gateway's own retries."""


class NotFound(GatewayError):
    """Unknown document, workspace, version or element identifier."""


class Unauthorized(GatewayError):
    """Credentials were rejected (401). Recurs for every document, so batches stop on it."""


class Forbidden(GatewayError):
    """The credentials are valid but may not access this resource (403)."""


class PartialDataLoss(SyncError):
    """A non-metadata fetch failed and its field was downgraded to an empty value.

    Attributes:
        document_id (str): The affected document.
        field (str): The record field that could not be refreshed.
    """

    def __init__(self, document_id: str, field: str, cause: Exception):
        super().__init__(f"Fetching '{field}' for document {document_id} failed: {cause}")
        self.document_id = document_id
        self.field = field
        self.cause = cause


class LocalStoreCorrupt(SyncError):
    """A persisted record could not be parsed and was ignored."""

    def __init__(self, path: str, cause: Exception):
        super().__init__(f"Record file '{path}' could not be parsed: {cause}")
        self.path = path
        self.cause = cause
