"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Input (user-entered amounts, fees)
  2xxx: Redemption rates
  3xxx: Market / phase
  9xxx: System (snapshot, chain reads, configuration)
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Input ---

class InvalidInputError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(1001, f"Invalid input: {detail}", 422)


# --- 2xxx: Redemption rates ---

class DivisionUndefinedError(AppError):
    def __init__(self, detail: str = "redemption rate is undefined before settlement") -> None:
        super().__init__(2001, f"Division undefined: {detail}", 422)


# --- 3xxx: Market ---

class UnknownPhaseError(AppError):
    def __init__(self, raw: object) -> None:
        self.raw = raw
        super().__init__(3001, f"Unknown market phase: {raw!r}", 502)


class OperationNotPermittedError(AppError):
    def __init__(self, operation: str, phase: str) -> None:
        self.operation = operation
        self.phase = phase
        super().__init__(3002, f"Operation {operation} is not permitted in phase {phase}", 422)


# --- 9xxx: System ---

class StaleSnapshotError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(9001, f"Stale snapshot: {detail}", 503)


class ChainReadError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(9002, f"Chain read failed: {detail}", 502)


class NetworkConfigError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(9003, f"Network configuration error: {detail}", 500)
