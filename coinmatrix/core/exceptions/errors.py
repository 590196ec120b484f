from fastapi import status


class CoinMatrixError(Exception):
    """Base exception carrying the HTTP status the handlers respond with."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class StorageError(CoinMatrixError):
    """The persistence layer was unreachable or rejected an operation."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class UpstreamError(CoinMatrixError):
    """A market data provider failed, timed out or sent an unusable body."""

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(
        self,
        message: str,
        url: str | None = None,
        upstream_status: int | None = None,
    ):
        super().__init__(message)
        self.url = url
        self.upstream_status = upstream_status


class AuthError(CoinMatrixError):
    status_code = status.HTTP_401_UNAUTHORIZED
