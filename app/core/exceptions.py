from fastapi import status


class PortalError(Exception):
    """Базовый класс доменных ошибок, передаваемых вызывающей стороне."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    detail: str = "Request could not be processed"

    def __init__(self, detail: str | None = None):
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class InvalidCount(PortalError):
    detail = "Invalid code count (1-500)"


class ScoreOutOfRange(PortalError):
    detail = "Score must be between 0 and 100"


class MissingField(PortalError):
    detail = "Missing required fields"


class ExamNotFound(PortalError):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "Exam not found"


class CodeNotFound(PortalError):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "QR code not found for this exam"


class AlreadyClaimed(PortalError):
    status_code = status.HTTP_409_CONFLICT
    detail = "QR code already claimed"


class AlreadyHasCode(PortalError):
    status_code = status.HTTP_409_CONFLICT
    detail = "You have already claimed a QR code for this exam"


class CodeNotClaimed(PortalError):
    detail = "QR code not claimed by any student"


class NoCodesGenerated(PortalError):
    detail = "No QR codes generated for this exam"


class EmailAlreadyRegistered(PortalError):
    detail = "Email already registered"


class InvalidSecretKey(PortalError):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Invalid secret key"


class InvalidCredentials(PortalError):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Invalid credentials"
