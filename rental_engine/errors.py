"""Error taxonomy raised by the engine"""


class RentalEngineError(Exception):
    """Base class for all engine errors"""


class ValidationError(RentalEngineError):
    """Missing or malformed input; nothing was changed"""


class NotFoundError(RentalEngineError):
    def __init__(self, kind: str, key):
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} not found: {key}")


class CapacityError(RentalEngineError):
    """Operation would break a capacity rule (last studio, occupied locker, ...)"""


class ConcurrencyConflict(RentalEngineError):
    def __init__(self, key, expected_version: int, actual_version: int):
        self.key = key
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"{key} was modified concurrently (expected version {expected_version}, "
            f"found {actual_version}); reload and retry"
        )


class InvalidTransition(RentalEngineError):
    def __init__(self, action: str, current_status: str, key=None):
        self.action = action
        self.current_status = current_status
        self.key = key
        target = f" {key}" if key is not None else ""
        super().__init__(f"cannot {action}{target}: current status is '{current_status}'")
