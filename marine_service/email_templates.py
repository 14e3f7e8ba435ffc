"""
MJML Email Templates
Transactional emails for appointments, boat rides, orders and repairs
"""

from typing import Optional

from .config import FRONTEND_URL, STORE_NAME

# Marine blue color scheme
THEME = {
    "primary": "#0369a1",
    "primary_dark": "#075985",
    "primary_light": "#e0f2fe",
    "background": "#f8fafc",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
    "success": "#059669",
    "danger": "#ef4444",
}


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
) -> str:
    """Base MJML template wrapper for all emails"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section padding="20px 0">
          <mj-column>
            <mj-button
              href="{cta_url}"
              background-color="{THEME['primary']}"
              color="#ffffff"
              font-weight="600"
              border-radius="8px"
              padding="18px 40px"
              font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', 'Helvetica Neue', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="{THEME['primary']}" padding="28px 20px">
          <mj-column>
            <mj-text align="center" font-size="22px" font-weight="700" color="#ffffff" padding="0">
              {STORE_NAME}
            </mj-text>
          </mj-column>
        </mj-section>

        <mj-section background-color="#ffffff" padding="40px 40px 48px 40px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" line-height="1.3" padding="0 0 16px 0">
              {title}
            </mj-text>

            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="#94a3b8" padding="0">
              {STORE_NAME}. You're receiving this because you booked a service or placed an order with us.
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def _detail_rows(rows: list[tuple[str, str]]) -> str:
    """Two-column label/value table"""
    body = "".join(
        f"""
        <tr>
          <td style="padding: 6px 0; color: {THEME['text_muted']};">{label}</td>
          <td style="padding: 6px 0; text-align: right; font-weight: 600; color: {THEME['text_primary']};">{value}</td>
        </tr>"""
        for label, value in rows
    )
    return f"""
    <mj-table font-size="15px" padding="8px 0 16px 0">
      {body}
    </mj-table>
    """


def appointment_received_template(
    customer_name: str, service_type: str, appointment_date: str, appointment_time: str
) -> str:
    content = f"""
    <mj-text>Hi {customer_name},</mj-text>
    <mj-text>
      We've received your appointment request. Our team will confirm it shortly.
    </mj-text>
    {_detail_rows([
        ("Service", service_type),
        ("Date", appointment_date),
        ("Time", appointment_time),
    ])}
    <mj-text color="{THEME['text_muted']}" font-size="14px">
      Pending appointments can be changed or cancelled from your account.
    </mj-text>
    """
    return get_base_template(
        title="Appointment Request Received",
        preview_text=f"{service_type} on {appointment_date} at {appointment_time}",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/my-appointments",
        cta_label="View My Appointments",
    )


def order_confirmation_template(
    customer_name: str, order_id: str, items: list[dict], total_amount: float
) -> str:
    rows = [(f"{item['productName']} × {item['quantity']}", f"LKR {item['totalPrice']:,.2f}") for item in items]
    rows.append(("Total", f"LKR {total_amount:,.2f}"))
    content = f"""
    <mj-text>Hi {customer_name},</mj-text>
    <mj-text>Thank you for your order. Your payment was received and the order is confirmed.</mj-text>
    <mj-text font-weight="600" color="{THEME['text_primary']}">Order {order_id}</mj-text>
    {_detail_rows(rows)}
    """
    return get_base_template(
        title="Order Confirmed",
        preview_text=f"Order {order_id} is confirmed",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/my-orders",
        cta_label="Track Your Order",
    )


def order_status_update_template(
    customer_name: str, order_id: str, status: str, notes: Optional[str] = None
) -> str:
    notes_section = f"<mj-text>Note from our team: {notes}</mj-text>" if notes else ""
    content = f"""
    <mj-text>Hi {customer_name},</mj-text>
    <mj-text>
      Your order <strong>{order_id}</strong> is now <strong>{status.replace('_', ' ')}</strong>.
    </mj-text>
    {notes_section}
    """
    return get_base_template(
        title="Order Status Updated",
        preview_text=f"Order {order_id}: {status}",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/my-orders",
        cta_label="View Order",
    )


def repair_invoice_template(
    customer_name: str,
    booking_id: str,
    final_cost: float,
    advance_payment: float,
    remaining_amount: float,
    work_performed: Optional[str] = None,
) -> str:
    work_section = f"<mj-text>Work performed: {work_performed}</mj-text>" if work_performed else ""
    content = f"""
    <mj-text>Hi {customer_name},</mj-text>
    <mj-text>The repair on your boat is complete. Here is your final invoice.</mj-text>
    {work_section}
    {_detail_rows([
        ("Booking", booking_id),
        ("Final cost", f"LKR {final_cost:,.2f}"),
        ("Advance paid", f"LKR {advance_payment:,.2f}"),
        ("Balance due", f"LKR {remaining_amount:,.2f}"),
    ])}
    """
    return get_base_template(
        title="Your Repair Invoice",
        preview_text=f"Invoice for repair {booking_id}",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/my-repairs",
        cta_label="Pay Balance",
    )


RIDE_TERMS_NOTICES = {
    "content_review": (
        "Your booking request needs a closer look because of the activities it mentions. "
        "Please make sure everything planned follows our safety and conduct policies."
    ),
    "large_group": (
        "Groups of more than 15 passengers receive an extra safety briefing and "
        "additional crew supervision."
    ),
}


def ride_terms_template(
    customer_name: str,
    package_name: str,
    booking_date: str,
    booking_time: str,
    reason: str,
    custom_message: Optional[str] = None,
) -> str:
    notice = RIDE_TERMS_NOTICES.get(reason)
    notice_section = f"<mj-text font-weight=\"600\">{notice}</mj-text>" if notice else ""
    custom_section = f"<mj-text>{custom_message}</mj-text>" if custom_message else ""
    content = f"""
    <mj-text>Hi {customer_name},</mj-text>
    <mj-text>
      Thank you for booking a boat ride with {STORE_NAME}. Before your trip, please
      review our safety and conduct guidelines.
    </mj-text>
    {_detail_rows([
        ("Package", package_name),
        ("Date", booking_date),
        ("Time", booking_time),
    ])}
    {notice_section}
    <mj-text>
      Life jackets are mandatory and provided on board. Illegal substances and excessive
      alcohol are not permitted. Damage to the vessel is charged separately, and bad
      weather may require rescheduling.
    </mj-text>
    <mj-text color="{THEME['text_muted']}" font-size="14px">
      Full payment is due 48 hours before departure. Cancel at least 24 hours ahead
      for a full refund.
    </mj-text>
    {custom_section}
    """
    return get_base_template(
        title="Terms & Conditions for Your Boat Ride",
        preview_text=f"{package_name} on {booking_date} at {booking_time}",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/my-bookings",
        cta_label="View My Booking",
    )


def ride_confirmed_template(
    customer_name: str, package_name: str, booking_date: str, booking_time: str, amount: float
) -> str:
    content = f"""
    <mj-text>Hi {customer_name},</mj-text>
    <mj-text>Your payment was received and your boat ride is confirmed.</mj-text>
    {_detail_rows([
        ("Package", package_name),
        ("Date", booking_date),
        ("Time", booking_time),
        ("Paid", f"LKR {amount:,.2f}"),
    ])}
    """
    return get_base_template(
        title="Boat Ride Confirmed",
        preview_text=f"{package_name} on {booking_date} is confirmed",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/my-bookings",
        cta_label="View My Booking",
    )
