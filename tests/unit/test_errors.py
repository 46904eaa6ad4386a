"""Tests for gm_common.errors — codes, HTTP statuses and messages."""

import pytest

from src.gm_common.errors import (
    AppError,
    ChainReadError,
    DivisionUndefinedError,
    InvalidInputError,
    NetworkConfigError,
    OperationNotPermittedError,
    StaleSnapshotError,
    UnknownPhaseError,
)


class TestErrorCodes:
    @pytest.mark.parametrize(
        "exc, code, status",
        [
            (InvalidInputError("x"), 1001, 422),
            (DivisionUndefinedError(), 2001, 422),
            (UnknownPhaseError(9), 3001, 502),
            (OperationNotPermittedError("MINT", "SETTLED"), 3002, 422),
            (StaleSnapshotError("x"), 9001, 503),
            (ChainReadError("x"), 9002, 502),
            (NetworkConfigError("x"), 9003, 500),
        ],
    )
    def test_code_and_status(self, exc: AppError, code: int, status: int) -> None:
        assert isinstance(exc, AppError)
        assert exc.code == code
        assert exc.http_status == status

    def test_message_is_str(self) -> None:
        exc = InvalidInputError("usdc_in must be positive")
        assert str(exc) == exc.message == "Invalid input: usdc_in must be positive"


class TestErrorDetails:
    def test_unknown_phase_keeps_raw(self) -> None:
        exc = UnknownPhaseError(7)
        assert exc.raw == 7
        assert "7" in exc.message

    def test_operation_not_permitted_message(self) -> None:
        exc = OperationNotPermittedError("MINT", "FROZEN")
        assert exc.operation == "MINT"
        assert exc.phase == "FROZEN"
        assert exc.message == "Operation MINT is not permitted in phase FROZEN"

    def test_division_undefined_default_detail(self) -> None:
        assert "before settlement" in DivisionUndefinedError().message
