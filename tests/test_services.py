"""Tests for the payment service layer."""

import pytest

from wallet_payments.connectors.base import PaymentStatus
from wallet_payments.errors import PaymentValidationError, ProcessorError
from wallet_payments.services import MISSING_FIELDS_MESSAGE, PaymentService

from conftest import StubConnector


@pytest.fixture
def service(stub_connector):
    return PaymentService(stub_connector, default_currency="usd")


class TestValidation:
    """Invalid input never reaches the processor."""

    @pytest.mark.parametrize("amount,token", [
        (None, "tok_visa"),
        (499, None),
        (499, ""),
        (499, "   "),
        (None, None),
    ])
    def test_missing_fields(self, service, stub_connector, amount, token):
        """Test that missing fields raise the documented message."""
        with pytest.raises(PaymentValidationError) as exc_info:
            service.create_and_confirm_payment(amount=amount, currency="usd", token=token)

        assert str(exc_info.value) == MISSING_FIELDS_MESSAGE
        assert stub_connector.calls == []

    @pytest.mark.parametrize("amount", [0, -100, True])
    def test_non_positive_amount(self, service, stub_connector, amount):
        """Test that non-positive amounts are rejected."""
        with pytest.raises(PaymentValidationError) as exc_info:
            service.create_and_confirm_payment(amount=amount, currency="usd", token="tok_visa")

        assert "positive integer" in str(exc_info.value)
        assert stub_connector.calls == []

    @pytest.mark.parametrize("currency", ["us", "dollars", "12$"])
    def test_malformed_currency(self, service, stub_connector, currency):
        """Test that malformed currencies are rejected."""
        with pytest.raises(PaymentValidationError):
            service.create_and_confirm_payment(amount=499, currency=currency, token="tok_visa")

        assert stub_connector.calls == []


class TestCreateAndConfirm:
    """Tests for PaymentService.create_and_confirm_payment."""

    def test_single_connector_call_with_passthrough_values(self, service, stub_connector):
        """Test that one connector call receives the request values."""
        service.create_and_confirm_payment(
            amount=499, currency="usd", token="tok_visa", description="Test", idempotency_key="key-1"
        )

        assert len(stub_connector.calls) == 1
        request, idempotency_key = stub_connector.calls[0]
        assert request.amount == 499
        assert request.currency == "usd"
        assert request.payment_token == "tok_visa"
        assert request.description == "Test"
        assert idempotency_key == "key-1"

    def test_currency_defaults_when_absent(self, service, stub_connector):
        """Test that the currency defaults to usd."""
        service.create_and_confirm_payment(amount=499, currency=None, token="tok_visa")

        request, _ = stub_connector.calls[0]
        assert request.currency == "usd"

    def test_configured_default_currency(self, stub_connector):
        """Test that the configured default currency is used."""
        service = PaymentService(stub_connector, default_currency="EUR")
        service.create_and_confirm_payment(amount=499, currency=None, token="tok_visa")

        request, _ = stub_connector.calls[0]
        assert request.currency == "eur"

    def test_currency_lowercased(self, service, stub_connector):
        """Test that the currency is lowercased."""
        service.create_and_confirm_payment(amount=499, currency="GBP", token="tok_visa")

        request, _ = stub_connector.calls[0]
        assert request.currency == "gbp"

    def test_success_result_carries_processor_fields(self, service):
        """Test that a success result keeps the processor fields."""
        result = service.create_and_confirm_payment(amount=499, currency="usd", token="tok_visa")

        assert result.success is True
        assert result.intent_id == "pi_1"
        assert result.status == PaymentStatus.SUCCEEDED
        assert result.raw_error is None
        assert result.intent == {"id": "pi_1", "status": "succeeded"}

    @pytest.mark.parametrize("processor_status,expected", [
        ("succeeded", PaymentStatus.SUCCEEDED),
        ("processing", PaymentStatus.PROCESSING),
        ("requires_action", PaymentStatus.REQUIRES_ACTION),
        ("requires_confirmation", PaymentStatus.REQUIRES_ACTION),
        ("requires_capture", PaymentStatus.PROCESSING),
        ("requires_payment_method", PaymentStatus.FAILED),
        ("canceled", PaymentStatus.FAILED),
        ("something_new", PaymentStatus.PROCESSING),
    ])
    def test_status_normalization(self, processor_status, expected):
        """Test mapping of processor statuses."""
        connector = StubConnector(intent={"id": "pi_x", "status": processor_status})
        result = PaymentService(connector).create_and_confirm_payment(
            amount=100, currency="usd", token="tok_visa"
        )

        assert result.status == expected
        assert result.intent["status"] == processor_status

    def test_failed_intent_reports_last_payment_error(self):
        """Test that a failed intent reports its last payment error."""
        connector = StubConnector(intent={
            "id": "pi_2",
            "status": "requires_payment_method",
            "last_payment_error": {"message": "Your card has insufficient funds."},
        })
        result = PaymentService(connector).create_and_confirm_payment(
            amount=100, currency="usd", token="tok_visa"
        )

        assert result.success is False
        assert result.raw_error == "Your card has insufficient funds."

    def test_processor_error_propagates(self):
        """Test that processor errors propagate unchanged."""
        connector = StubConnector(error=ProcessorError("Your card was declined.", code="card_declined"))

        with pytest.raises(ProcessorError) as exc_info:
            PaymentService(connector).create_and_confirm_payment(
                amount=100, currency="usd", token="tok_chargeDeclined"
            )

        assert exc_info.value.message == "Your card was declined."
        assert len(connector.calls) == 1
