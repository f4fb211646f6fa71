# Overview: Pytest coverage for pickup PIN generation and verification.

import pytest

from laundrypos.errors import InvalidSecret
from laundrypos.models import AuditEvent, Order
from laundrypos.services import order_service
from laundrypos.services.pickup_pin_service import (
    generate_pickup_pin,
    hash_pickup_pin,
    verify_pickup_pin,
)


class TestPinPrimitives:
    def test_generated_pin_is_six_digits(self, app):
        with app.app_context():
            for _ in range(50):
                pin = generate_pickup_pin()
                assert len(pin) == 6
                assert pin.isdigit()

    def test_length_is_configurable(self, app):
        with app.app_context():
            assert len(generate_pickup_pin(8)) == 8

    def test_too_short_rejected(self, app):
        with app.app_context():
            with pytest.raises(ValueError):
                generate_pickup_pin(3)

    def test_hash_round_trip(self, app):
        with app.app_context():
            hashed = hash_pickup_pin("042917")
            assert hashed != "042917"
            assert verify_pickup_pin("042917", hashed)
            assert not verify_pickup_pin("42917", hashed)
            assert not verify_pickup_pin("042918", hashed)

    def test_same_pin_hashes_differently(self, app):
        with app.app_context():
            assert hash_pickup_pin("123456") != hash_pickup_pin("123456")

    @pytest.mark.parametrize("pin,pin_hash", [
        (None, "$2b$04$abc"),
        ("123456", None),
        ("", "$2b$04$abc"),
        ("123456", "not-a-bcrypt-hash"),
    ])
    def test_missing_or_malformed_inputs_never_verify(self, pin, pin_hash):
        assert verify_pickup_pin(pin, pin_hash) is False


class TestPinLifecycle:
    def test_pin_is_single_use(self, db_session, owner_a, ready_order):
        order, pin = ready_order
        order_service.collect_order(owner_a, order.id, pin)

        stored = db_session.get(Order, order.id)
        assert stored.pickup_pin_hash is None
        assert not verify_pickup_pin(pin, stored.pickup_pin_hash)

    def test_plaintext_never_persisted_or_audited(self, db_session, owner_a, ready_order):
        order, pin = ready_order
        order_service.collect_order(owner_a, order.id, pin)

        stored = db_session.get(Order, order.id)
        assert pin not in str(stored.to_dict())
        for event_row in db_session.query(AuditEvent).all():
            assert pin not in str(event_row.event_metadata or {})

    def test_repeated_wrong_pins_each_audited(self, db_session, owner_a, ready_order):
        order, pin = ready_order
        wrong = "000000" if pin != "000000" else "111111"

        for _ in range(3):
            with pytest.raises(InvalidSecret):
                order_service.collect_order(owner_a, order.id, wrong)

        attempts = db_session.query(AuditEvent).filter_by(action="FAILED_COLLECTION_ATTEMPT").count()
        assert attempts == 3
        # The right PIN still works afterwards
        assert order_service.collect_order(owner_a, order.id, pin).status == "COLLECTED"

    def test_leading_zero_pin_survives(self, db_session, owner_a, customer_a, make_order, monkeypatch):
        monkeypatch.setattr(order_service, "generate_pickup_pin", lambda: "000123")
        order = make_order(owner_a, customer_a, total_cents=100, initial_cents=100)

        result = order_service.mark_ready(owner_a, order.id)

        assert result.pickup_pin == "000123"
        with pytest.raises(InvalidSecret):
            order_service.collect_order(owner_a, order.id, "123")
        assert order_service.collect_order(owner_a, order.id, "000123").status == "COLLECTED"
