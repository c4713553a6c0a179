"""
Service-level error taxonomy.

Services raise these; routers translate them into HTTP responses using the
``status_code`` carried by each class.
"""


class ServiceError(Exception):
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


class ValidationError(ServiceError):
    status_code = 400


class InvalidInterval(ValidationError):
    pass


class NoSensorsSelected(ValidationError):
    def __init__(self, message: str = "At least one sensor category must be set to 'all'"):
        super().__init__(message)


class AlreadyLogging(ServiceError):
    status_code = 409

    def __init__(self, message: str = "Logging is already running for this user"):
        super().__init__(message)


class CannotReconfigureWhileRunning(ServiceError):
    status_code = 409

    def __init__(self, message: str = "Stop logging before changing its configuration"):
        super().__init__(message)


class WrongMode(ServiceError):
    status_code = 409


class Conflict(ServiceError):
    status_code = 409


class NotFound(ServiceError):
    status_code = 404


class WriteFailure(ServiceError):
    status_code = 500


class RelayUnavailable(ServiceError):
    status_code = 502


class AuthError(ServiceError):
    status_code = 401


class PermissionDenied(ServiceError):
    status_code = 403
