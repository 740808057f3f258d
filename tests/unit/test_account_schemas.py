"""Tests for cc_account Pydantic schemas and cursor utilities."""

import pytest
from pydantic import ValidationError

from src.cc_account.application.schemas import (
    BalanceResponse,
    DepositRequest,
    DepositResponse,
    cursor_decode,
    cursor_encode,
)


class TestDepositRequest:
    def test_valid(self) -> None:
        req = DepositRequest(amount_cents=10000)
        assert req.amount_cents == 10000

    def test_zero_rejected(self) -> None:
        with pytest.raises(ValidationError):
            DepositRequest(amount_cents=0)

    def test_negative_rejected(self) -> None:
        with pytest.raises(ValidationError):
            DepositRequest(amount_cents=-100)


class TestResponses:
    def test_balance_display(self) -> None:
        resp = BalanceResponse.from_cents(user_id="u1", balance=123_456)
        assert resp.wallet_balance_cents == 123_456
        assert resp.wallet_balance_display == "$1,234.56"

    def test_deposit_display(self) -> None:
        resp = DepositResponse.from_result(balance=500_000, amount=200_000, entry_id=7)
        assert resp.deposited_display == "$2,000.00"
        assert resp.wallet_balance_display == "$5,000.00"
        assert resp.ledger_entry_id == 7


class TestCursorUtils:
    def test_encode_decode_roundtrip(self) -> None:
        cursor = cursor_encode(12345)
        assert cursor_decode(cursor) == 12345

    def test_encode_produces_string(self) -> None:
        cursor = cursor_encode(1)
        assert isinstance(cursor, str)
        assert len(cursor) > 0

    def test_decode_invalid_returns_none(self) -> None:
        assert cursor_decode("not-valid-base64!!!") is None

    def test_decode_none_returns_none(self) -> None:
        assert cursor_decode(None) is None
