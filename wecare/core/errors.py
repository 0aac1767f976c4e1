"""Error taxonomy shared by the repositories, services and routers.

Every error carries a stable, caller-safe message. Routers never build
messages from driver exceptions; ``main`` turns these into JSON responses.
"""


class WeCareError(Exception):
    status_code = 500
    default_message = "Server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(WeCareError):
    status_code = 400
    default_message = "Invalid input"


class AuthorizationError(WeCareError):
    status_code = 403
    default_message = "Unauthorized"


class InvalidStateError(WeCareError):
    status_code = 400
    default_message = "Invalid donation status"


class NotFoundError(WeCareError):
    status_code = 404
    default_message = "Not found"


class MatchingError(WeCareError):
    status_code = 500
    default_message = "Matching is currently unavailable"


class StorageError(WeCareError):
    status_code = 500
    default_message = "Server error"
