from __future__ import annotations


class RxLensError(Exception):
    status_code = 500

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ClientInputError(RxLensError):
    status_code = 400


class AuthError(RxLensError):
    status_code = 401


class UpstreamError(RxLensError):
    status_code = 500


class PersistenceError(RxLensError):
    status_code = 500

    def __init__(self, message: str, *, stage: str, prescription_id: str | None = None) -> None:
        super().__init__(message)
        self.stage = stage
        # Set when the header row committed but the analysis row did not.
        self.prescription_id = prescription_id


class NotFoundError(RxLensError):
    status_code = 404
