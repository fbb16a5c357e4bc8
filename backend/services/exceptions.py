class ServiceError(Exception):
    """Base class for errors raised by the service layer"""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(ServiceError):
    status_code = 404


class ForbiddenError(ServiceError):
    status_code = 403


class UnauthorizedError(ServiceError):
    status_code = 401


class InvalidOperationError(ServiceError):
    status_code = 400
