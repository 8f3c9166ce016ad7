"""Error taxonomy shared by the core and the HTTP layer."""


class TrackerError(Exception):
    """Base class for errors that map onto a client-visible response."""
    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(TrackerError):
    """Malformed or missing input. Nothing has been written."""
    status_code = 400


class InvalidReport(ValidationError):
    pass


class NotFoundError(TrackerError):
    status_code = 404


class DeviceNotFound(NotFoundError):
    def __init__(self, detail: str = "Device not found"):
        super().__init__(detail)


class ScreenshotNotFound(NotFoundError):
    def __init__(self, detail: str = "Screenshot not found"):
        super().__init__(detail)


class UserNotFound(NotFoundError):
    def __init__(self, detail: str = "User not found"):
        super().__init__(detail)


class AuthError(TrackerError):
    status_code = 401


class ConflictError(TrackerError):
    status_code = 409


class StorageError(TrackerError):
    """Underlying store failure. Never shown to clients verbatim."""
    status_code = 500
