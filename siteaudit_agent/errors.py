from __future__ import annotations


class AnalysisError(Exception):
    """Terminal failure of one analysis request, mapped to an HTTP status."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(AnalysisError):
    status_code = 400


class FetchFailed(AnalysisError):
    status_code = 400

    def __init__(self, message: str, upstream_status: int | None = None):
        super().__init__(message)
        self.upstream_status = upstream_status


class ParseFailure(AnalysisError):
    status_code = 500


class DetectorFailure(Exception):
    """Raised inside a single detector rule. Never terminal."""

    def __init__(self, detector: str, cause: BaseException):
        super().__init__(f"{detector}: {cause}")
        self.detector = detector
        self.cause = cause
