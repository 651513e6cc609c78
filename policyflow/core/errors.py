class PolicyFlowError(Exception):
    """Base for failures that terminate a request with a specific status code."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidArgumentError(PolicyFlowError):
    status_code = 400


class ForbiddenError(PolicyFlowError):
    status_code = 403


class NotFoundError(PolicyFlowError):
    status_code = 404


class ConflictError(PolicyFlowError):
    status_code = 409


class InternalError(PolicyFlowError):
    status_code = 500
