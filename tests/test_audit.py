from skyreserve.audit.lineage import AuditRecord, AuditStore
from skyreserve.booking.engine import BookingOptions


def test_audit_history_ordering() -> None:
    store = AuditStore()
    store.reset()
    store.log(action="booking_confirmed", component="booking_engine", customer_id="C1")
    store.log(action="payment_completed", component="payment_processor", customer_id="C1")
    store.log(action="booking_cancelled", component="booking_engine", customer_id="C1")
    store.log(action="booking_confirmed", component="booking_engine", customer_id="C2")

    history = store.get_history("C1")
    assert len(history) == 3
    assert [row.action for row in history] == ["booking_confirmed", "payment_completed", "booking_cancelled"]


def test_audit_lineage_lookup() -> None:
    store = AuditStore()
    store.reset()
    store.log(action="refund_requested", component="booking_engine", output_reference="RFD-1")
    store.log(action="booking_cancelled", component="booking_engine", output_reference="BKG-1")
    lineage = store.get_lineage("RFD-1")
    assert len(lineage) == 1
    assert lineage[0].action == "refund_requested"


def test_audit_store_has_no_update_delete_methods() -> None:
    assert not hasattr(AuditStore, "update")
    assert not hasattr(AuditStore, "delete")


def test_booking_lifecycle_is_audited(runtime, add_flight, customer_id) -> None:
    add_flight()
    booking = runtime.bookings.book_flight(customer_id, "SK100", BookingOptions(seat_number="12A"))
    runtime.bookings.cancel_booking(customer_id, booking.booking_id)

    history = runtime.customer_audit_history(customer_id)

    assert [row["action"] for row in history] == ["booking_confirmed", "booking_cancelled", "refund_requested"]
    assert history[0]["output_reference"] == booking.booking_id
    assert history[1]["detail"]["seat_released"] is True


def test_flight_history_spans_customers(runtime, add_flight, customer_id) -> None:
    add_flight()
    other = runtime.accounts.register_customer("Grace Hopper", "grace@example.com", "pw").user_id
    runtime.bookings.book_flight(customer_id, "SK100", BookingOptions(seat_number="12A"))
    runtime.bookings.book_flight(other, "SK100", BookingOptions(seat_number="12B"))

    history = runtime.flight_audit_history("SK100")

    assert [row["action"] for row in history] == ["flight_added", "booking_confirmed", "booking_confirmed"]
    assert [row["customer_id"] for row in history[1:]] == [customer_id, other]


def test_record_from_row_ignores_backend_columns() -> None:
    store = AuditStore()
    store.reset()
    row = store.repository.insert(
        {
            "timestamp": "2026-01-01T00:00:00+00:00",
            "action": "points_redeemed",
            "component": "redemption_processor",
            "customer_id": "C9",
            "created_at": "2026-01-01T00:00:01+00:00",
        }
    )

    record = AuditRecord.from_row(row)

    assert record.action == "points_redeemed"
    assert record.detail == {}
    assert store.get_history("C9")[0].id == record.id
