"""Tests for boat repair bookings, the workshop workflow and repair billing."""

from datetime import datetime, timedelta

import pytest
from conftest import VALID_SIGNATURE, webhook_body

from marine_service.domain.repairs.transitions import can_transition
from marine_service.models_payment import Payment


def repair_request(days_ahead=10, **overrides):
    payload = {
        "serviceType": "engine_repair",
        "problemDescription": "Engine overheats after twenty minutes",
        "boatDetails": {"boatType": "speedboat", "boatMake": "Yamaha", "boatYear": 2018},
        "scheduledDateTime": (datetime.utcnow() + timedelta(days=days_ahead)).isoformat(),
        "serviceLocation": {"type": "marina", "marinaName": "Colombo Marina"},
    }
    payload.update(overrides)
    return payload


def pay(client, fake_stripe, service_id, amount, stage):
    """Create a boat_repair intent and settle it through the webhook"""
    created = client.post(
        "/api/payments/create-payment-intent",
        json={
            "amount": amount,
            "serviceType": "boat_repair",
            "serviceId": service_id,
            "serviceDescription": "Boat repair",
            "customerEmail": "nimal@mail.com",
            "customerName": "Nimal Perera",
            "metadata": {"stage": stage},
        },
    ).json()["data"]
    client.post(
        "/api/payments/webhook",
        content=webhook_body("payment_intent.succeeded", created["paymentIntentId"]),
        headers={"Stripe-Signature": VALID_SIGNATURE},
    )
    return created


@pytest.fixture
def repair(client, customer_headers):
    response = client.post("/api/boat-repairs", json=repair_request(), headers=customer_headers)
    assert response.status_code == 201
    return response.json()["data"]


class TestTransitions:
    """Tests for the repair status table."""

    @pytest.mark.parametrize(
        "current,new,allowed",
        [
            ("pending", "assigned", True),
            ("in_progress", "waiting_parts", True),
            ("waiting_parts", "completed", True),
            ("pending", "completed", False),
            ("completed", "in_progress", False),
            ("cancelled", "pending", False),
        ],
    )
    def test_table(self, current, new, allowed):
        """Only listed moves are allowed and terminal states have none."""
        assert can_transition(current, new) is allowed


class TestCreateRepair:
    """Tests for POST /api/boat-repairs."""

    def test_customer_books_repair(self, client, customer_headers):
        """New repairs are pending with a REP booking id."""
        response = client.post("/api/boat-repairs", json=repair_request(), headers=customer_headers)

        body = response.json()
        assert response.status_code == 201
        assert body["bookingId"].startswith("REP-")
        assert body["data"]["status"] == "pending"
        assert body["data"]["payment"]["status"] == "pending"
        assert body["data"]["repairCosts"]["paymentStatus"] == "advance_pending"
        assert [u["status"] for u in body["data"]["statusUpdates"]] == ["pending"]

    def test_staff_cannot_book(self, client, employee_headers):
        """Repair requests are made by customers."""
        response = client.post("/api/boat-repairs", json=repair_request(), headers=employee_headers)

        assert response.status_code == 403

    def test_unknown_boat_type(self, client, customer_headers):
        """Boat type is a closed set."""
        response = client.post(
            "/api/boat-repairs",
            json=repair_request(boatDetails={"boatType": "submarine"}),
            headers=customer_headers,
        )

        assert response.status_code == 400

    def test_advance_payment_is_attached(self, client, db, fake_stripe, customer_headers):
        """A settled advance taken before booking is re-pointed at the new repair."""
        advance = pay(client, fake_stripe, "REPAIR-DRAFT-1", 5000, "advance")

        response = client.post(
            "/api/boat-repairs",
            json=repair_request(paymentId=advance["paymentId"]),
            headers=customer_headers,
        )

        data = response.json()["data"]
        assert response.status_code == 201
        assert data["payment"]["status"] == "paid"
        assert data["payment"]["paymentId"] == advance["paymentId"]
        assert data["repairCosts"]["advancePayment"] == 5000
        assert data["repairCosts"]["paymentStatus"] == "advance_paid"

        payment = db.query(Payment).filter(Payment.payment_id == advance["paymentId"]).one()
        assert payment.service_id == data["bookingId"]

    def test_unsettled_advance_rejected(self, client, fake_stripe, customer_headers):
        """An advance that has not succeeded cannot be attached."""
        created = client.post(
            "/api/payments/create-payment-intent",
            json={
                "amount": 5000,
                "serviceType": "boat_repair",
                "serviceId": "REPAIR-DRAFT-2",
                "serviceDescription": "Boat repair",
                "customerEmail": "nimal@mail.com",
                "customerName": "Nimal Perera",
            },
        ).json()["data"]

        response = client.post(
            "/api/boat-repairs",
            json=repair_request(paymentId=created["paymentId"]),
            headers=customer_headers,
        )

        assert response.status_code == 400


class TestCustomerActions:
    """Tests for customer edit, cancel and delete."""

    def test_cancel_needs_three_days_notice(self, client, customer_headers):
        """Repairs inside the notice window cannot be cancelled."""
        soon = client.post(
            "/api/boat-repairs", json=repair_request(days_ahead=1), headers=customer_headers
        ).json()["data"]

        response = client.patch(f"/api/boat-repairs/{soon['id']}/cancel", headers=customer_headers)

        assert response.status_code == 400
        assert "3 days" in response.json()["message"]

    def test_cancel_with_notice(self, client, repair, customer_headers):
        """Repairs far enough ahead can be cancelled."""
        response = client.patch(f"/api/boat-repairs/{repair['id']}/cancel", headers=customer_headers)

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "cancelled"

    def test_other_customer_cannot_cancel(self, client, repair, other_customer_headers):
        """Only the owner can cancel."""
        response = client.patch(
            f"/api/boat-repairs/{repair['id']}/cancel", headers=other_customer_headers
        )

        assert response.status_code == 403

    def test_edit_merges_nested_details(self, client, repair, customer_headers):
        """Partial boat details are merged into the stored ones."""
        response = client.put(
            f"/api/boat-repairs/{repair['id']}/customer-edit",
            json={"boatDetails": {"boatModel": "F115"}, "customerNotes": "Call before arriving"},
            headers=customer_headers,
        )

        data = response.json()["data"]
        assert data["boatDetails"]["boatMake"] == "Yamaha"
        assert data["boatDetails"]["boatModel"] == "F115"
        assert data["customerNotes"] == "Call before arriving"

    def test_customer_delete(self, client, repair, customer_headers, employee_headers):
        """Owners can delete with enough notice."""
        response = client.delete(
            f"/api/boat-repairs/{repair['id']}/customer-delete", headers=customer_headers
        )

        assert response.status_code == 200
        assert client.get(f"/api/boat-repairs/{repair['id']}", headers=employee_headers).status_code == 404

    def test_my_repairs_hide_internal_notes(self, client, repair, customer_headers, employee_headers):
        """Customers never see staff notes."""
        client.put(
            f"/api/boat-repairs/{repair['id']}",
            json={"internalNotes": "Customer was rude"},
            headers=employee_headers,
        )

        response = client.get("/api/boat-repairs/my-repairs", headers=customer_headers)

        assert response.json()["count"] == 1
        assert response.json()["data"][0]["internalNotes"] is None


class TestWorkshopWorkflow:
    """Tests for the staff-driven status workflow."""

    def test_skipping_to_completed_is_refused(self, client, repair, employee_headers):
        """pending cannot jump straight to completed."""
        response = client.put(
            f"/api/boat-repairs/{repair['id']}/update-status",
            json={"status": "completed"},
            headers=employee_headers,
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Cannot change repair status from pending to completed"

    def test_assign_technician(self, client, repair, employee, employee_headers):
        """Assigning moves the repair to assigned and records who did it."""
        response = client.put(
            f"/api/boat-repairs/{repair['id']}/assign-technician",
            json={"technicianId": employee.id},
            headers=employee_headers,
        )

        data = response.json()["data"]
        assert data["status"] == "assigned"
        assert data["assignedTechnician"]["id"] == employee.id
        assert data["assignedBy"]["id"] == employee.id

    def test_assign_customer_as_technician_refused(self, client, repair, customer, employee_headers):
        """Customers cannot be assigned."""
        response = client.put(
            f"/api/boat-repairs/{repair['id']}/assign-technician",
            json={"technicianId": customer.id},
            headers=employee_headers,
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid technician"

    @pytest.mark.parametrize(
        "suffix,field", [("/assign-technician", "technicianId"), ("", "assignedTechnician")]
    )
    def test_admin_is_not_a_technician(self, client, repair, admin, employee_headers, suffix, field):
        """Both assignment paths only accept active employees."""
        response = client.put(
            f"/api/boat-repairs/{repair['id']}{suffix}",
            json={field: admin.id},
            headers=employee_headers,
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid technician"

    def test_mark_received_once(self, client, repair, employee_headers):
        """Receiving the boat starts the work and can only happen once."""
        first = client.put(f"/api/boat-repairs/{repair['id']}/mark-received", headers=employee_headers)
        second = client.put(f"/api/boat-repairs/{repair['id']}/mark-received", headers=employee_headers)

        assert first.json()["data"]["status"] == "in_progress"
        assert first.json()["data"]["boatReceivedAt"] is not None
        assert second.status_code == 400

    def test_technicians_listed(self, client, employee, admin, employee_headers):
        """Technicians are employees with a repair position."""
        response = client.get("/api/boat-repairs/technicians", headers=employee_headers)

        assert [t["id"] for t in response.json()["data"]] == [employee.id]

    def test_admin_delete(self, client, repair, admin_headers, employee_headers):
        """Only admins hard-delete repairs."""
        assert client.delete(f"/api/boat-repairs/{repair['id']}", headers=employee_headers).status_code == 403
        assert client.delete(f"/api/boat-repairs/{repair['id']}", headers=admin_headers).status_code == 200


class TestBilling:
    """Tests for invoicing and the final payment."""

    @pytest.fixture
    def completed(self, client, fake_stripe, customer_headers, employee_headers):
        advance = pay(client, fake_stripe, "REPAIR-DRAFT-3", 5000, "advance")
        repair = client.post(
            "/api/boat-repairs",
            json=repair_request(paymentId=advance["paymentId"]),
            headers=customer_headers,
        ).json()["data"]
        client.put(f"/api/boat-repairs/{repair['id']}/mark-received", headers=employee_headers)
        client.put(
            f"/api/boat-repairs/{repair['id']}/update-status",
            json={"status": "completed"},
            headers=employee_headers,
        )
        return repair

    def test_invoice_reports_remaining_balance(self, client, completed, employee_headers, customer_headers):
        """The advance is deducted from the final cost."""
        response = client.post(
            f"/api/boat-repairs/{completed['id']}/send-invoice",
            json={"finalCost": 20000, "workPerformed": "Replaced impeller"},
            headers=employee_headers,
        )

        assert response.json()["data"] == {
            "repairId": completed["bookingId"],
            "finalCost": 20000,
            "remainingAmount": 15000,
        }

        costs = client.get(
            f"/api/boat-repairs/booking/{completed['bookingId']}/costs", headers=customer_headers
        ).json()["data"]
        assert costs["paymentStatus"] == "invoice_sent"
        assert costs["advancePayment"] == 5000

    def test_final_payment_settles_repair(
        self, client, fake_stripe, completed, employee_headers, customer_headers
    ):
        """A settled balance payment marks the repair fully paid, and re-posting it is harmless."""
        client.post(
            f"/api/boat-repairs/{completed['id']}/send-invoice",
            json={"finalCost": 20000},
            headers=employee_headers,
        )
        balance = pay(client, fake_stripe, completed["bookingId"], 15000, "final")

        first = client.post(
            f"/api/boat-repairs/booking/{completed['bookingId']}/final-payment",
            json={"paymentId": balance["paymentId"]},
            headers=customer_headers,
        )
        second = client.post(
            f"/api/boat-repairs/booking/{completed['bookingId']}/final-payment",
            json={"paymentId": balance["paymentId"]},
            headers=customer_headers,
        )

        assert first.status_code == 200
        assert second.status_code == 200
        data = second.json()["data"]
        assert data["finalPayment"]["status"] == "paid"
        assert data["repairCosts"]["paymentStatus"] == "fully_paid"
        assert data["repairCosts"]["remainingAmount"] == 0

    def test_final_payment_needs_completed_repair(self, client, fake_stripe, repair, customer_headers):
        """Balances are only taken once the work is done."""
        created = client.post(
            "/api/payments/create-payment-intent",
            json={
                "amount": 5000,
                "serviceType": "boat_repair",
                "serviceId": repair["bookingId"],
                "serviceDescription": "Boat repair",
                "customerEmail": "nimal@mail.com",
                "customerName": "Nimal Perera",
                "metadata": {"stage": "final"},
            },
        ).json()["data"]

        response = client.post(
            f"/api/boat-repairs/booking/{repair['bookingId']}/final-payment",
            json={"paymentId": created["paymentId"]},
            headers=customer_headers,
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Repair must be completed before final payment"

    def test_cannot_invoice_cancelled_repair(self, client, repair, customer_headers, employee_headers):
        """Cancelled repairs are not billed."""
        client.patch(f"/api/boat-repairs/{repair['id']}/cancel", headers=customer_headers)

        response = client.post(
            f"/api/boat-repairs/{repair['id']}/send-invoice",
            json={"finalCost": 1000},
            headers=employee_headers,
        )

        assert response.status_code == 400

    def test_advance_cannot_settle_the_balance(self, client, completed, employee_headers, customer_headers):
        """The diagnostic fee payment is not accepted as the final payment."""
        client.post(
            f"/api/boat-repairs/{completed['id']}/send-invoice",
            json={"finalCost": 20000},
            headers=employee_headers,
        )

        response = client.post(
            f"/api/boat-repairs/booking/{completed['bookingId']}/final-payment",
            json={"paymentId": completed["payment"]["paymentId"]},
            headers=customer_headers,
        )

        assert response.status_code == 400
        costs = client.get(
            f"/api/boat-repairs/booking/{completed['bookingId']}/costs", headers=customer_headers
        ).json()["data"]
        assert costs["paymentStatus"] == "invoice_sent"
        assert costs["remainingAmount"] == 15000

    def test_refunding_advance_leaves_final_stage(
        self, client, fake_stripe, completed, employee_headers, admin_headers, customer_headers
    ):
        """Refunding the advance only touches the advance stage."""
        client.post(
            f"/api/boat-repairs/{completed['id']}/send-invoice",
            json={"finalCost": 20000},
            headers=employee_headers,
        )
        client.post(
            f"/api/boat-repairs/booking/{completed['bookingId']}/final-payment",
            json={"paymentId": completed["payment"]["paymentId"]},
            headers=customer_headers,
        )

        client.post(
            f"/api/payments/admin/payment/{completed['payment']['paymentId']}/refund",
            json={"reason": "Diagnostic waived"},
            headers=admin_headers,
        )

        data = client.get(f"/api/boat-repairs/{completed['id']}", headers=customer_headers).json()["data"]
        assert data["payment"]["status"] == "refunded"
        assert data["finalPayment"]["status"] == "pending"

    def test_underpayment_does_not_settle(self, client, fake_stripe, completed, employee_headers, customer_headers):
        """A final payment smaller than the balance leaves the repair unpaid."""
        client.post(
            f"/api/boat-repairs/{completed['id']}/send-invoice",
            json={"finalCost": 20000},
            headers=employee_headers,
        )
        short = pay(client, fake_stripe, completed["bookingId"], 50, "final")

        response = client.post(
            f"/api/boat-repairs/booking/{completed['bookingId']}/final-payment",
            json={"paymentId": short["paymentId"]},
            headers=customer_headers,
        )

        assert response.status_code == 400
        assert response.json()["message"] == (
            "Payment amount does not cover the remaining balance of 15000.00"
        )
        costs = client.get(
            f"/api/boat-repairs/booking/{completed['bookingId']}/costs", headers=customer_headers
        ).json()["data"]
        assert costs["paymentStatus"] == "invoice_sent"
        assert costs["remainingAmount"] == 15000

    def test_webhook_final_payment_before_completion_ignored(
        self, client, fake_stripe, repair, customer_headers
    ):
        """A settled final payment for unfinished work does not mark the balance paid."""
        pay(client, fake_stripe, repair["bookingId"], 5000, "final")

        data = client.get(f"/api/boat-repairs/{repair['id']}", headers=customer_headers).json()["data"]
        assert data["finalPayment"]["status"] == "pending"
        assert data["repairCosts"]["paymentStatus"] != "fully_paid"
