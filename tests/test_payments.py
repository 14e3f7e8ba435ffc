"""Tests for Stripe payment intents, webhooks, confirmation and refunds."""

import pytest
from conftest import VALID_SIGNATURE, webhook_body

from marine_service.models_order import Order
from marine_service.models_payment import Payment


def intent_request(**overrides):
    payload = {
        "amount": 5000,
        "serviceType": "maintenance",
        "serviceId": "MNT-1",
        "serviceDescription": "Hull antifouling",
        "customerEmail": "nimal@mail.com",
        "customerName": "Nimal Perera",
    }
    payload.update(overrides)
    return payload


def send_webhook(client, event_type, intent_id, signature=VALID_SIGNATURE):
    return client.post(
        "/api/payments/webhook",
        content=webhook_body(event_type, intent_id),
        headers={"Stripe-Signature": signature, "Content-Type": "application/json"},
    )


@pytest.fixture
def order(client, customer_headers, product):
    response = client.post(
        "/api/orders",
        json={"items": [{"productId": product.id, "quantity": 3}], "deliveryMethod": "pickup"},
        headers=customer_headers,
    )
    return response.json()["data"]


@pytest.fixture
def order_payment(client, fake_stripe, order):
    response = client.post(
        "/api/payments/create-payment-intent",
        json=intent_request(
            amount=order["totalAmount"],
            serviceType="spare_parts",
            serviceId=order["orderId"],
            serviceDescription="Spare parts order",
        ),
    )
    assert response.status_code == 200
    return response.json()["data"]


class TestCreatePaymentIntent:
    """Tests for POST /api/payments/create-payment-intent."""

    def test_creates_pending_payment(self, client, fake_stripe):
        """The local record starts pending with a client secret for checkout."""
        response = client.post("/api/payments/create-payment-intent", json=intent_request())

        data = response.json()["data"]
        assert response.status_code == 200
        assert data["clientSecret"] == "pi_test_1_secret"
        assert data["paymentId"].startswith("PAY-")
        assert data["invoiceNumber"].startswith("INV-")
        assert data["currency"] == "lkr"
        assert fake_stripe.created_intents[0].amount == 500000

        stored = client.get(f"/api/payments/payment/{data['paymentId']}").json()["data"]
        assert stored["status"] == "pending"
        assert stored["paidAt"] is None

    def test_minimum_amount(self, client, fake_stripe):
        """Amounts below the minimum are refused."""
        response = client.post("/api/payments/create-payment-intent", json=intent_request(amount=10))

        assert response.status_code == 400
        assert response.json()["message"] == "Minimum payment amount is 50 LKR"
        assert fake_stripe.created_intents == []

    def test_unknown_order_reference(self, client, fake_stripe):
        """Spare part payments must point at an existing order."""
        response = client.post(
            "/api/payments/create-payment-intent",
            json=intent_request(serviceType="spare_parts", serviceId="ORD-MISSING"),
        )

        assert response.status_code == 400
        assert fake_stripe.created_intents == []

    def test_unknown_service_type(self, client, fake_stripe):
        """Service types outside the closed set are validation errors."""
        response = client.post(
            "/api/payments/create-payment-intent", json=intent_request(serviceType="yacht_party")
        )

        assert response.status_code == 400

    def test_signed_in_user_is_linked(self, client, fake_stripe, customer, customer_headers, db):
        """A bearer token links the payment to the customer."""
        response = client.post(
            "/api/payments/create-payment-intent", json=intent_request(), headers=customer_headers
        )

        payment_id = response.json()["data"]["paymentId"]
        stored = db.query(Payment).filter(Payment.payment_id == payment_id).one()
        assert stored.customer_id == customer.id


class TestConfirmPayment:
    """Tests for POST /api/payments/payment/{payment_id}/confirm."""

    def test_confirm_mirrors_stripe_status(self, client, fake_stripe):
        """Confirm reads the intent and records the charge."""
        created = client.post("/api/payments/create-payment-intent", json=intent_request()).json()["data"]
        fake_stripe.set_status(created["paymentIntentId"], "succeeded", "ch_123")

        response = client.post(f"/api/payments/payment/{created['paymentId']}/confirm")

        data = response.json()["data"]
        assert data["status"] == "succeeded"
        assert data["paidAt"] is not None
        assert data["receiptUrl"].endswith("ch_123")

    def test_confirm_while_pending(self, client, fake_stripe):
        """An unpaid intent leaves the payment pending."""
        created = client.post("/api/payments/create-payment-intent", json=intent_request()).json()["data"]

        response = client.post(f"/api/payments/payment/{created['paymentId']}/confirm")

        assert response.json()["data"]["status"] == "pending"

    def test_unknown_payment(self, client, fake_stripe):
        """Missing payments answer 404."""
        response = client.post("/api/payments/payment/PAY-NOPE/confirm")

        assert response.status_code == 404


class TestWebhook:
    """Tests for POST /api/payments/webhook."""

    def test_bad_signature_rejected(self, client, fake_stripe, order_payment):
        """Unsigned deliveries are refused and change nothing."""
        response = send_webhook(
            client, "payment_intent.succeeded", order_payment["paymentIntentId"], signature="t=1,v1=forged"
        )

        assert response.status_code == 400
        assert response.json()["message"].startswith("Webhook Error")

    def test_success_marks_order_paid_once(self, client, db, fake_stripe, order, order_payment, product):
        """A succeeded intent confirms the order and takes stock once, even if redelivered."""
        first = send_webhook(client, "payment_intent.succeeded", order_payment["paymentIntentId"])
        second = send_webhook(client, "payment_intent.succeeded", order_payment["paymentIntentId"])

        assert first.json() == {"received": True}
        assert second.status_code == 200

        stored = db.query(Order).filter(Order.order_id == order["orderId"]).one()
        assert stored.payment_status == "paid"
        assert stored.status == "confirmed"
        assert stored.payment_id == order_payment["paymentId"]
        db.refresh(product)
        assert product.quantity == 7

        payment = db.query(Payment).filter(Payment.payment_id == order_payment["paymentId"]).one()
        assert payment.status == "succeeded"

    def test_failure_after_success_is_ignored(self, client, db, fake_stripe, order_payment):
        """A settled payment is never downgraded."""
        send_webhook(client, "payment_intent.succeeded", order_payment["paymentIntentId"])
        send_webhook(client, "payment_intent.payment_failed", order_payment["paymentIntentId"])

        payment = db.query(Payment).filter(Payment.payment_id == order_payment["paymentId"]).one()
        assert payment.status == "succeeded"

    def test_failure_marks_order_payment_failed(self, client, db, fake_stripe, order, order_payment):
        """A failed intent is reflected on the unpaid order."""
        send_webhook(client, "payment_intent.payment_failed", order_payment["paymentIntentId"])

        stored = db.query(Order).filter(Order.order_id == order["orderId"]).one()
        assert stored.payment_status == "failed"
        assert stored.status == "pending"

    def test_unknown_events_are_acknowledged(self, client, fake_stripe):
        """Events this service does not handle are still acknowledged."""
        response = send_webhook(client, "customer.created", "cus_1")

        assert response.status_code == 200
        assert response.json() == {"received": True}

    def test_order_payment_link(self, client, fake_stripe, order, order_payment, customer_headers):
        """Linking a succeeded payment from the order side confirms it too."""
        send_webhook(client, "payment_intent.succeeded", order_payment["paymentIntentId"])

        response = client.post(
            f"/api/orders/{order['orderId']}/payment",
            json={"paymentId": order_payment["paymentId"]},
            headers=customer_headers,
        )

        assert response.json()["data"] == {
            "orderId": order["orderId"],
            "paymentStatus": "paid",
            "orderStatus": "confirmed",
        }


class TestMyPayments:
    """Tests for GET /api/payments/my-payments."""

    def test_lists_only_succeeded_by_default(self, client, fake_stripe, customer_headers):
        """Customers see their settled payments."""
        paid = client.post("/api/payments/create-payment-intent", json=intent_request()).json()["data"]
        client.post("/api/payments/create-payment-intent", json=intent_request(serviceId="MNT-2"))
        send_webhook(client, "payment_intent.succeeded", paid["paymentIntentId"])

        response = client.get("/api/payments/my-payments", headers=customer_headers)

        body = response.json()
        assert [p["paymentId"] for p in body["data"]] == [paid["paymentId"]]
        assert body["pagination"]["totalItems"] == 1

    def test_other_customers_payments_hidden(self, client, fake_stripe, other_customer_headers):
        """Payments are matched by the signed-in email."""
        paid = client.post("/api/payments/create-payment-intent", json=intent_request()).json()["data"]
        send_webhook(client, "payment_intent.succeeded", paid["paymentIntentId"])

        response = client.get("/api/payments/my-payments", headers=other_customer_headers)

        assert response.json()["data"] == []


class TestRefunds:
    """Tests for POST /api/payments/admin/payment/{payment_id}/refund."""

    @pytest.fixture
    def paid(self, client, fake_stripe):
        created = client.post("/api/payments/create-payment-intent", json=intent_request()).json()["data"]
        send_webhook(client, "payment_intent.succeeded", created["paymentIntentId"])
        return created

    def test_partial_then_full_refund(self, client, fake_stripe, paid, admin_headers):
        """Partial refunds accumulate until the payment is fully refunded."""
        url = f"/api/payments/admin/payment/{paid['paymentId']}/refund"

        first = client.post(url, json={"amount": 2000, "reason": "requested_by_customer"}, headers=admin_headers)
        assert first.json()["data"]["remainingAmount"] == 3000
        assert first.json()["data"]["status"] == "succeeded"

        second = client.post(url, json={"reason": "Engine trouble"}, headers=admin_headers)
        assert second.json()["data"]["refundAmount"] == 3000
        assert second.json()["data"]["status"] == "refunded"

        assert fake_stripe.refunds[0].amount == 200000
        assert fake_stripe.refunds[0].reason == "requested_by_customer"
        assert fake_stripe.refunds[1].reason is None

        third = client.post(url, json={}, headers=admin_headers)
        assert third.status_code == 400

    def test_refund_above_balance(self, client, fake_stripe, paid, admin_headers):
        """Refunds cannot exceed what is left."""
        response = client.post(
            f"/api/payments/admin/payment/{paid['paymentId']}/refund",
            json={"amount": 6000},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert fake_stripe.refunds == []

    def test_pending_payment_not_refundable(self, client, fake_stripe, admin_headers):
        """Only succeeded payments can be refunded."""
        created = client.post("/api/payments/create-payment-intent", json=intent_request()).json()["data"]

        response = client.post(
            f"/api/payments/admin/payment/{created['paymentId']}/refund", json={}, headers=admin_headers
        )

        assert response.status_code == 400

    def test_admin_only(self, client, fake_stripe, paid, employee_headers):
        """Employees cannot issue refunds."""
        response = client.post(
            f"/api/payments/admin/payment/{paid['paymentId']}/refund", json={}, headers=employee_headers
        )

        assert response.status_code == 403

    def test_admin_listing_has_stats(self, client, fake_stripe, paid, admin_headers):
        """The admin list carries pagination and totals."""
        response = client.get("/api/payments/admin/payments", headers=admin_headers)

        body = response.json()
        assert body["pagination"]["totalItems"] == 1
        assert "stats" in body
