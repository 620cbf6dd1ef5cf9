# pickup_api/services/errors.py
"""Domain errors raised by the pickup services.

Each error is scoped to the single operation that raised it and is
reported to the caller as-is; main.py maps them to HTTP responses.
"""


class PickupError(Exception):
    status_code = 400
    code = "error"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(PickupError):
    status_code = 422
    code = "validation_error"


class NotFound(PickupError):
    status_code = 404
    code = "not_found"


class Forbidden(PickupError):
    status_code = 403
    code = "forbidden"


class InvalidState(PickupError):
    status_code = 409
    code = "invalid_state"


class Conflict(PickupError):
    status_code = 409
    code = "conflict"


class OutOfRange(PickupError):
    status_code = 422
    code = "out_of_range"

    def __init__(self, detail: str, distance_km: float, radius_km: float):
        super().__init__(detail)
        self.distance_km = distance_km
        self.radius_km = radius_km


class NoCandidates(PickupError):
    status_code = 422
    code = "no_candidates"
