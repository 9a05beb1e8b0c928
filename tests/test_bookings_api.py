from datetime import date, timedelta

import pytest

from homeservice.models import BookingNotification
from tests.conftest import auth_headers, make_provider, make_service, make_user, next_weekday


@pytest.fixture
def service(db, provider):
    return make_service(db, provider, price=2000.0, duration=60)


def booking_payload(service, day=None, time="10:00", **overrides):
    payload = {
        "serviceId": service.id,
        "providerId": service.provider_id,
        "scheduledDate": (day or next_weekday()).isoformat(),
        "scheduledTime": time,
        "location": {"type": "customer_address", "address": {"street": "5 Zoo Road", "city": "Guwahati"}},
        "specialRequests": "Please bring <script>x</script> extra brushes",
    }
    payload.update(overrides)
    return payload


def create_booking(client, customer, service, **kwargs):
    response = client.post("/api/bookings", json=booking_payload(service, **kwargs), headers=auth_headers(customer))
    assert response.status_code == 201, response.text
    return response.json()["booking"]


class TestCreateBooking:
    def test_creates_pending_booking_with_pricing(self, client, customer, service, outbox):
        response = client.post("/api/bookings", json=booking_payload(service), headers=auth_headers(customer))

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Booking request submitted, awaiting provider confirmation"
        booking = body["booking"]
        assert booking["status"] == "pending"
        assert booking["bookingNumber"].startswith("GS-")
        assert booking["pricing"]["subtotal"] == 2000.0
        assert booking["pricing"]["tax"] == 360.0
        assert booking["pricing"]["totalAmount"] == 2360.0
        assert booking["customerInfo"]["email"] == customer.email
        assert "<script>" not in booking["specialRequests"]
        assert [h["status"] for h in booking["statusHistory"]] == ["pending"]
        # Only the provider is emailed; the customer made the request
        assert [m["to"] for m in outbox] == ["provider@example.com"]

    def test_both_parties_get_in_app_notifications(self, client, db, customer, provider, service):
        create_booking(client, customer, service)

        recipients = {n.recipient_id for n in db.query(BookingNotification).all()}
        assert recipients == {customer.id, provider.id}

    def test_booked_slot_conflicts(self, client, db, customer, service):
        create_booking(client, customer, service)
        other = make_user(db, "second@example.com")

        response = client.post(
            "/api/bookings", json=booking_payload(service, time="10:30"), headers=auth_headers(other)
        )

        assert response.status_code == 409
        assert response.json()["detail"]["message"] == "Time slot is already booked"

    def test_adjacent_slot_is_free(self, client, customer, service):
        create_booking(client, customer, service)
        booking = create_booking(client, customer, service, time="11:00")
        assert booking["scheduledTime"] == "11:00"

    def test_weekend_is_unavailable(self, client, customer, service):
        saturday = next_weekday(3)
        while saturday.weekday() != 5:
            saturday += timedelta(days=1)

        response = client.post(
            "/api/bookings", json=booking_payload(service, day=saturday), headers=auth_headers(customer)
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Provider is not available on this day"

    def test_outside_working_hours_lists_alternatives(self, client, customer, service):
        response = client.post(
            "/api/bookings", json=booking_payload(service, time="16:30"), headers=auth_headers(customer)
        )

        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["message"] == "Provider is not available at the requested time"
        assert detail["requestedTime"] == "16:30"
        assert "09:00" in detail["availableSlots"]
        assert "16:00" in detail["availableSlots"]

    def test_beyond_advance_booking_window(self, client, customer, service):
        response = client.post(
            "/api/bookings",
            json=booking_payload(service, day=next_weekday(45)),
            headers=auth_headers(customer),
        )
        assert response.status_code == 400
        assert "days in advance" in response.json()["detail"]

    def test_past_date_rejected(self, client, customer, service):
        response = client.post(
            "/api/bookings",
            json=booking_payload(service, day=date.today() - timedelta(days=1)),
            headers=auth_headers(customer),
        )
        assert response.status_code == 422

    def test_providers_cannot_book(self, client, provider, service):
        response = client.post("/api/bookings", json=booking_payload(service), headers=auth_headers(provider))
        assert response.status_code == 403

    def test_unverified_email_cannot_book(self, client, db, service):
        unverified = make_user(db, "unverified@example.com", email_verified=False)
        response = client.post("/api/bookings", json=booking_payload(service), headers=auth_headers(unverified))
        assert response.status_code == 403
        assert response.json()["detail"] == "Email verification required"

    def test_inactive_account_cannot_book(self, client, db, service):
        pending = make_user(db, "pending@example.com", account_status="pending_verification")
        response = client.post("/api/bookings", json=booking_payload(service), headers=auth_headers(pending))
        assert response.status_code == 403
        assert response.json()["detail"] == "Account status must be one of: active"

    def test_service_must_belong_to_provider(self, client, db, customer, service):
        other = make_provider(db, email="other@example.com", business_name="Nail Bar")
        response = client.post(
            "/api/bookings", json=booking_payload(service, providerId=other.id), headers=auth_headers(customer)
        )
        assert response.status_code == 400

    def test_inactive_service(self, client, db, customer, provider):
        draft = make_service(db, provider, name="Draft Facial", status="draft")
        response = client.post("/api/bookings", json=booking_payload(draft), headers=auth_headers(customer))
        assert response.status_code == 404

    def test_auto_accept_confirms_immediately(self, client, customer, provider, service):
        client.put(
            "/api/availability/schedule",
            json={"weeklySchedule": {}, "autoAcceptBookings": True},
            headers=auth_headers(provider),
        )

        response = client.post("/api/bookings", json=booking_payload(service), headers=auth_headers(customer))

        assert response.status_code == 201
        assert response.json()["message"] == "Booking confirmed successfully"
        assert response.json()["booking"]["status"] == "confirmed"

    def test_blocked_day_is_unavailable(self, client, customer, provider, service):
        day = next_weekday()
        client.post(
            "/api/availability/block",
            json={"startDate": day.isoformat(), "endDate": day.isoformat(), "reason": "Holiday"},
            headers=auth_headers(provider),
        )

        response = client.post("/api/bookings", json=booking_payload(service, day=day), headers=auth_headers(customer))
        assert response.status_code == 400


class TestGuestBooking:
    def test_guest_booking_and_tracking(self, client, service, outbox):
        payload = booking_payload(
            service,
            guestInfo={"firstName": "Meera", "lastName": "Kalita", "email": "meera@example.com", "phone": "+919812345678"},
        )

        response = client.post("/api/bookings/guest", json=payload)

        assert response.status_code == 201
        booking = response.json()["booking"]
        assert booking["isGuestBooking"] is True
        assert booking["metadata"]["bookingSource"] == "guest"
        assert {m["to"] for m in outbox} == {"provider@example.com", "meera@example.com"}

        tracked = client.get(f"/api/bookings/track/{booking['bookingNumber'].lower()}")
        assert tracked.status_code == 200
        assert tracked.json()["booking"]["serviceName"] == service.name
        assert tracked.json()["booking"]["providerBusinessName"] == "Glow Studio"

    def test_unknown_booking_number(self, client):
        assert client.get("/api/bookings/track/XX-20240101-0001").status_code == 404


class TestWorkflow:
    def test_accept_start_complete_awards_loyalty(self, client, db, customer, provider, service):
        booking = create_booking(client, customer, service)
        headers = auth_headers(provider)

        accepted = client.patch(f"/api/bookings/{booking['id']}/accept", json={"message": "See you"}, headers=headers)
        assert accepted.status_code == 200
        assert accepted.json()["booking"]["status"] == "confirmed"
        assert accepted.json()["booking"]["providerResponse"]["message"] == "See you"

        started = client.patch(f"/api/bookings/{booking['id']}/start", headers=headers)
        assert started.json()["booking"]["status"] == "in_progress"

        completed = client.patch(
            f"/api/bookings/{booking['id']}/complete", json={"actualDuration": 70}, headers=headers
        )
        assert completed.status_code == 200
        assert completed.json()["loyaltyPointsAwarded"] == 23
        assert completed.json()["booking"]["metadata"]["actualDuration"] == 70

        db.refresh(customer)
        db.refresh(service)
        assert customer.loyalty_coins == 23
        assert service.booking_count == 1

    def test_cannot_accept_twice(self, client, customer, provider, service):
        booking = create_booking(client, customer, service)
        client.patch(f"/api/bookings/{booking['id']}/accept", headers=auth_headers(provider))

        response = client.patch(f"/api/bookings/{booking['id']}/accept", headers=auth_headers(provider))
        assert response.status_code == 400
        assert response.json()["detail"] == "Booking cannot be accepted"

    def test_cannot_start_pending_booking(self, client, customer, provider, service):
        booking = create_booking(client, customer, service)
        response = client.patch(f"/api/bookings/{booking['id']}/start", headers=auth_headers(provider))
        assert response.status_code == 400

    def test_reject_frees_the_slot(self, client, db, customer, provider, service):
        booking = create_booking(client, customer, service)

        rejected = client.patch(
            f"/api/bookings/{booking['id']}/reject", json={"reason": "Fully booked"}, headers=auth_headers(provider)
        )
        assert rejected.json()["booking"]["status"] == "cancelled"
        assert rejected.json()["booking"]["cancellationDetails"]["cancelledBy"] == "provider"

        other = make_user(db, "second@example.com")
        create_booking(client, other, service)

    def test_other_provider_cannot_act(self, client, db, customer, service):
        booking = create_booking(client, customer, service)
        other = make_provider(db, email="other@example.com", business_name="Nail Bar")

        response = client.patch(f"/api/bookings/{booking['id']}/accept", headers=auth_headers(other))
        assert response.status_code == 404

    def test_customer_cancels_with_full_refund(self, client, customer, service):
        booking = create_booking(client, customer, service)

        response = client.patch(
            f"/api/bookings/{booking['id']}/cancel", json={"reason": "Change of plans"}, headers=auth_headers(customer)
        )

        assert response.status_code == 200
        body = response.json()
        assert body["refundAmount"] == 2360.0
        assert body["refundProcessingTime"]
        assert body["booking"]["status"] == "cancelled"

        again = client.patch(f"/api/bookings/{booking['id']}/cancel", headers=auth_headers(customer))
        assert again.status_code == 400
        assert again.json()["detail"] == "Booking cannot be cancelled"


class TestReading:
    def test_lists_are_scoped_by_role(self, client, customer, provider, service):
        create_booking(client, customer, service)

        mine = client.get("/api/bookings/customer", headers=auth_headers(customer))
        assert mine.status_code == 200
        assert mine.json()["pagination"]["total"] == 1

        incoming = client.get("/api/bookings/provider", params={"status": "pending"}, headers=auth_headers(provider))
        assert len(incoming.json()["bookings"]) == 1

        assert client.get("/api/bookings/provider", headers=auth_headers(customer)).status_code == 403
        assert client.get("/api/bookings/customer", headers=auth_headers(provider)).status_code == 403

    def test_detail_access(self, client, db, customer, admin, service):
        booking = create_booking(client, customer, service)

        own = client.get(f"/api/bookings/{booking['id']}", headers=auth_headers(customer))
        assert own.status_code == 200
        assert own.json()["booking"]["canCancel"] is True

        assert client.get(f"/api/bookings/{booking['id']}", headers=auth_headers(admin)).status_code == 200

        stranger = make_user(db, "stranger@example.com")
        assert client.get(f"/api/bookings/{booking['id']}", headers=auth_headers(stranger)).status_code == 403
        assert client.get("/api/bookings/9999", headers=auth_headers(customer)).status_code == 404

    def test_messages(self, client, customer, provider, service):
        booking = create_booking(client, customer, service)

        response = client.post(
            f"/api/bookings/{booking['id']}/messages", json={"message": "Is parking available?"},
            headers=auth_headers(customer),
        )
        assert response.json() == {"message": "Message added successfully", "messageCount": 1}

        empty = client.post(
            f"/api/bookings/{booking['id']}/messages", json={"message": "   "}, headers=auth_headers(provider)
        )
        assert empty.status_code == 400

    def test_notifications(self, client, customer, provider, service):
        create_booking(client, customer, service)
        headers = auth_headers(provider)

        listed = client.get("/api/bookings/notifications", headers=headers).json()
        assert listed["unreadCount"] == 1
        notification = listed["notifications"][0]
        assert notification["title"] == "New Booking Request"

        read = client.patch(f"/api/bookings/notifications/{notification['id']}/read", headers=headers)
        assert read.status_code == 200

        unread = client.get("/api/bookings/notifications", params={"unreadOnly": True}, headers=headers).json()
        assert unread["unreadCount"] == 0
        assert unread["notifications"] == []

        create_booking(client, customer, service, time="13:00")
        cleared = client.patch("/api/bookings/notifications/read-all", headers=headers)
        assert cleared.json()["updated"] == 1
