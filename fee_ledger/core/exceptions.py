from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class SnapshotUnavailableError(ServiceError):
    """No trustworthy class/section record exists for a pupil in an ended term."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_424_FAILED_DEPENDENCY)


class LedgerSourceError(ServiceError):
    """The ledger data source is missing or could not be loaded."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_503_SERVICE_UNAVAILABLE)
