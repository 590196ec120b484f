from .errors import AuthError, CoinMatrixError, StorageError, UpstreamError
