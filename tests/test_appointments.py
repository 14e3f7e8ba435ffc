"""Tests for appointment booking, slot availability and the staff workflow."""

import pytest

from marine_service.domain.appointments.repository import AppointmentRepository
from marine_service.models_booking import Appointment
from marine_service.models_payment import Payment

SLOT_TAKEN = "Time slot is already booked. Please choose another time."


def booking(**overrides):
    payload = {
        "customerName": "Nimal Perera",
        "customerEmail": "nimal@mail.com",
        "customerPhone": "+94 77 123 4567",
        "serviceType": "General Service",
        "appointmentDate": "2030-05-10",
        "appointmentTime": "10:00 AM",
        "boatDetails": {"boatName": "Sea Breeze", "boatType": "Fishing Boat"},
        "description": "Annual engine check",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def booked(client):
    response = client.post("/api/appointments", json=booking())
    assert response.status_code == 201
    return response.json()["data"]


class TestCreateAppointment:
    """Tests for POST /api/appointments."""

    def test_booking_is_stored_as_pending(self, client, booked):
        """New bookings start pending on the requested day."""
        assert booked["status"] == "Pending"
        assert booked["appointmentDate"] == "2030-05-10"
        assert booked["appointmentTime"] == "10:00 AM"

    def test_iso_datetime_keeps_the_picked_day(self, client):
        """A timestamp with a zone offset is stored on the day it names."""
        response = client.post(
            "/api/appointments",
            json=booking(appointmentDate="2030-05-10T23:30:00+05:30", appointmentTime="11:00 AM"),
        )

        assert response.status_code == 201
        assert response.json()["data"]["appointmentDate"] == "2030-05-10"

    def test_same_slot_cannot_be_booked_twice(self, client, booked):
        """A second booking for an active slot is refused."""
        response = client.post(
            "/api/appointments",
            json=booking(customerName="Kamala Silva", customerEmail="kamala@mail.com"),
        )

        assert response.status_code == 400
        assert response.json()["message"] == SLOT_TAKEN

    def test_time_outside_grid_rejected(self, client):
        """Only the fixed hourly slots can be booked."""
        response = client.post("/api/appointments", json=booking(appointmentTime="10:30 AM"))

        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_missing_boat_details_rejected(self, client):
        """Boat name and type are required."""
        payload = booking()
        del payload["boatDetails"]

        response = client.post("/api/appointments", json=payload)

        assert response.status_code == 400


class TestSlotIndex:
    """Tests for the database rule of one active appointment per slot."""

    @pytest.fixture
    def no_precheck(self, monkeypatch):
        monkeypatch.setattr(
            AppointmentRepository, "find_slot_conflict", staticmethod(lambda *args, **kwargs: None)
        )

    def test_index_rejects_booking_that_skips_the_check(self, client, db, booked, no_precheck):
        """A concurrent insert for a held slot fails on commit and is reported as taken."""
        response = client.post(
            "/api/appointments",
            json=booking(customerName="Kamala Silva", customerEmail="kamala@mail.com"),
        )

        assert response.status_code == 400
        assert response.json()["message"] == SLOT_TAKEN
        assert db.query(Appointment).count() == 1

    def test_index_allows_rebooking_a_cancelled_slot(self, client, booked, customer_headers, no_precheck):
        """Cancelled appointments do not hold their slot."""
        client.delete(f"/api/appointments/customer/{booked['id']}", headers=customer_headers)

        response = client.post("/api/appointments", json=booking(customerEmail="kamala@mail.com"))

        assert response.status_code == 201

    def test_reactivating_onto_taken_slot_refused(self, client, booked, customer_headers, employee_headers):
        """A cancelled appointment cannot be confirmed once its slot is rebooked."""
        client.delete(f"/api/appointments/customer/{booked['id']}", headers=customer_headers)
        client.post("/api/appointments", json=booking(customerEmail="kamala@mail.com"))

        response = client.patch(
            f"/api/appointments/{booked['id']}/status",
            json={"status": "Confirmed"},
            headers=employee_headers,
        )

        assert response.status_code == 400
        assert response.json()["message"] == SLOT_TAKEN

    def test_index_catches_reactivation_that_skips_the_check(
        self, client, db, booked, customer_headers, employee_headers, no_precheck
    ):
        """Re-activation that races past the check is still refused by the index."""
        client.delete(f"/api/appointments/customer/{booked['id']}", headers=customer_headers)
        client.post("/api/appointments", json=booking(customerEmail="kamala@mail.com"))

        response = client.patch(
            f"/api/appointments/{booked['id']}/status",
            json={"status": "Confirmed"},
            headers=employee_headers,
        )

        assert response.status_code == 400
        assert db.get(Appointment, booked["id"]).status == "Cancelled"


class TestAvailability:
    """Tests for the available-slots and calendar endpoints."""

    def test_booked_slot_is_not_available(self, client, booked):
        """Active bookings are removed from the free list."""
        response = client.get("/api/appointments/available-slots/2030-05-10")

        data = response.json()["data"]
        assert response.status_code == 200
        assert len(data["availableSlots"]) == 11
        assert "10:00 AM" not in data["availableSlots"]
        assert data["bookedSlots"] == ["10:00 AM"]

    def test_customer_cancel_frees_the_slot(self, client, booked, customer_headers):
        """Cancelling keeps the record and releases the slot."""
        response = client.delete(
            f"/api/appointments/customer/{booked['id']}", headers=customer_headers
        )
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "Cancelled"

        slots = client.get("/api/appointments/available-slots/2030-05-10").json()["data"]
        assert len(slots["availableSlots"]) == 12

        rebook = client.post(
            "/api/appointments",
            json=booking(customerName="Kamala Silva", customerEmail="kamala@mail.com"),
        )
        assert rebook.status_code == 201

    def test_invalid_date_is_400(self, client):
        """Unparseable dates are client errors."""
        response = client.get("/api/appointments/available-slots/not-a-date")

        assert response.status_code == 400

    def test_calendar_partial_and_full_days(self, client, db):
        """Twelve active bookings make a day full."""
        for time in [
            "09:00 AM", "10:00 AM", "11:00 AM", "12:00 PM", "01:00 PM", "02:00 PM",
            "03:00 PM", "04:00 PM", "05:00 PM", "06:00 PM", "07:00 PM", "08:00 PM",
        ]:
            assert client.post(
                "/api/appointments", json=booking(appointmentDate="2030-05-12", appointmentTime=time)
            ).status_code == 201
        client.post("/api/appointments", json=booking(appointmentDate="2030-05-14"))

        response = client.get("/api/appointments/calendar/2030/5")

        data = response.json()["data"]
        assert data["fullyBookedDates"] == ["2030-05-12"]
        assert data["partiallyBookedDates"] == ["2030-05-14"]
        assert data["totalAppointments"] == 13

    def test_calendar_invalid_month(self, client):
        """Month must be between 1 and 12."""
        response = client.get("/api/appointments/calendar/2030/13")

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid year or month"


class TestCustomerAppointments:
    """Tests for the customer self-service routes."""

    def test_customer_sees_own_appointments(self, client, booked, customer_headers):
        """Appointments are matched by the signed-in email."""
        response = client.get("/api/appointments/customer", headers=customer_headers)

        assert response.status_code == 200
        assert [a["id"] for a in response.json()["data"]] == [booked["id"]]

    def test_other_customer_cannot_cancel(self, client, booked, other_customer_headers):
        """Customers can only cancel their own appointments."""
        response = client.delete(
            f"/api/appointments/customer/{booked['id']}", headers=other_customer_headers
        )

        assert response.status_code == 403

    def test_only_pending_can_be_edited(self, client, db, booked, customer_headers):
        """Confirmed appointments are locked for customers."""
        appointment = db.get(Appointment, booked["id"])
        appointment.status = "Confirmed"
        db.commit()

        response = client.put(
            f"/api/appointments/customer/{booked['id']}",
            json={"description": "Changed"},
            headers=customer_headers,
        )

        assert response.status_code == 400


class TestStaffAppointments:
    """Tests for the staff management routes."""

    def test_status_change(self, client, booked, employee_headers):
        """Staff move appointments through the workflow."""
        response = client.patch(
            f"/api/appointments/{booked['id']}/status",
            json={"status": "Confirmed", "adminNotes": "See you then"},
            headers=employee_headers,
        )

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "Confirmed"
        assert response.json()["data"]["adminNotes"] == "See you then"

    def test_unknown_status_rejected(self, client, booked, employee_headers):
        """Statuses outside the workflow are refused."""
        response = client.patch(
            f"/api/appointments/{booked['id']}/status",
            json={"status": "Lost"},
            headers=employee_headers,
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid status"

    def test_list_reports_payment_status(self, client, db, employee_headers):
        """Paid visits show their payment; other services need none."""
        visit = client.post(
            "/api/appointments",
            json=booking(serviceType="Boat Purchase Visit", appointmentTime="09:00 AM"),
        ).json()["data"]
        client.post("/api/appointments", json=booking())
        db.add(
            Payment(
                payment_id="PAY-1",
                stripe_payment_intent_id="pi_visit",
                service_type="boat_sales_visit",
                service_id=str(visit["id"]),
                service_description="Boat purchase visit",
                amount=5000.0,
                amount_in_cents=500000,
                currency="lkr",
                customer_name="Nimal Perera",
                customer_email="nimal@mail.com",
                status="succeeded",
                invoice_number="INV-1",
            )
        )
        db.commit()

        response = client.get("/api/appointments", headers=employee_headers)

        statuses = {a["serviceType"]: a["paymentStatus"] for a in response.json()["data"]}
        assert statuses == {"Boat Purchase Visit": "succeeded", "General Service": "not_required"}

    def test_staff_can_clear_notes_and_cost(self, client, booked, employee_headers):
        """An explicit null clears optional staff fields; nulls for required fields are ignored."""
        client.put(
            f"/api/appointments/{booked['id']}",
            json={"adminNotes": "Bring logbook", "estimatedCost": 15000},
            headers=employee_headers,
        )

        response = client.put(
            f"/api/appointments/{booked['id']}",
            json={"adminNotes": None, "estimatedCost": None, "customerName": None},
            headers=employee_headers,
        )

        data = response.json()["data"]
        assert response.status_code == 200
        assert data["adminNotes"] is None
        assert data["estimatedCost"] is None
        assert data["customerName"] == "Nimal Perera"

    def test_unknown_appointment_is_404(self, client, employee_headers):
        """Missing appointments answer 404."""
        response = client.get("/api/appointments/999", headers=employee_headers)

        assert response.status_code == 404
