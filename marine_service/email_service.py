"""
Email Service using Resend
Provides email functionality using MJML templates for responsive design
"""

import logging
from typing import Optional, Union

import resend
from mjml import mjml_to_html

from .config import EMAIL_FROM_ADDRESS, RESEND_API_KEY
from .email_templates import (
    appointment_received_template,
    order_confirmation_template,
    order_status_update_template,
    repair_invoice_template,
    ride_confirmed_template,
    ride_terms_template,
)

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
        # Newer releases return an object with html/errors, older ones a dict
        errors = getattr(result, "errors", None)
        if isinstance(result, dict):
            errors = result.get("errors")
        if errors:
            logger.warning(f"MJML compilation warnings: {errors}")
        if isinstance(result, dict):
            return result.get("html", "")
        return getattr(result, "html", str(result))
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise Exception(f"Failed to compile MJML template: {str(e)}") from e


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: Optional[str] = None,
) -> dict:
    """
    Send an email through Resend

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (will be compiled to HTML)
        from_address: Optional custom from address

    Returns:
        Send response dict
    """
    if not RESEND_API_KEY:
        logger.error("❌ No email service configured - RESEND_API_KEY missing")
        raise Exception("Email service not configured")

    html_content = compile_mjml_to_html(mjml_content)
    recipients = [to] if isinstance(to, str) else to

    try:
        logger.info(f"📧 Sending email via Resend to: {recipients}")
        response = resend.Emails.send(
            {
                "from": from_address or EMAIL_FROM_ADDRESS,
                "to": recipients,
                "subject": subject,
                "html": html_content,
            }
        )
        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return response
    except Exception as e:
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise Exception(f"Failed to send email: {str(e)}") from e


# ============================================
# Pre-built Emails for Booking and Order Events
# ============================================


async def send_appointment_received_email(
    to: str, customer_name: str, service_type: str, appointment_date: str, appointment_time: str
) -> dict:
    return await send_email(
        to=to,
        subject="We received your appointment request",
        mjml_content=appointment_received_template(
            customer_name, service_type, appointment_date, appointment_time
        ),
    )


async def send_order_confirmation_email(
    to: str, customer_name: str, order_id: str, items: list[dict], total_amount: float
) -> dict:
    return await send_email(
        to=to,
        subject=f"Order Confirmation - {order_id}",
        mjml_content=order_confirmation_template(customer_name, order_id, items, total_amount),
    )


async def send_order_status_email(
    to: str, customer_name: str, order_id: str, status: str, notes: Optional[str] = None
) -> dict:
    return await send_email(
        to=to,
        subject=f"Order {order_id} - {status.replace('_', ' ').title()}",
        mjml_content=order_status_update_template(customer_name, order_id, status, notes),
    )


async def send_repair_invoice_email(
    to: str,
    customer_name: str,
    booking_id: str,
    final_cost: float,
    advance_payment: float,
    remaining_amount: float,
    work_performed: Optional[str] = None,
) -> dict:
    return await send_email(
        to=to,
        subject=f"Repair Invoice - {booking_id}",
        mjml_content=repair_invoice_template(
            customer_name, booking_id, final_cost, advance_payment, remaining_amount, work_performed
        ),
    )


async def send_ride_terms_email(
    to: str,
    customer_name: str,
    package_name: str,
    booking_date: str,
    booking_time: str,
    reason: str,
    custom_message: Optional[str] = None,
) -> dict:
    return await send_email(
        to=to,
        subject="Important: Terms & Conditions for Your Boat Booking",
        mjml_content=ride_terms_template(
            customer_name, package_name, booking_date, booking_time, reason, custom_message
        ),
    )


async def send_ride_confirmed_email(
    to: str, customer_name: str, package_name: str, booking_date: str, booking_time: str, amount: float
) -> dict:
    return await send_email(
        to=to,
        subject=f"Boat Ride Confirmed - {package_name}",
        mjml_content=ride_confirmed_template(
            customer_name, package_name, booking_date, booking_time, amount
        ),
    )
