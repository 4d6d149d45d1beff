"""
Email Service using Resend
Provides email functionality using MJML templates for responsive design
"""

import logging
from typing import Optional, Union

import resend
from mjml import mjml_to_html

from .config import CLINIC_NAME, EMAIL_FROM_ADDRESS, RESEND_API_KEY
from .email_templates import (
    appointment_cancelled_template,
    appointment_confirmed_template,
    payment_receipt_template,
)
from .shared.validators import format_display_date, format_peso

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
        # mjml_to_html returns a dict with 'html' and 'errors' keys
        if isinstance(result, dict):
            if result.get("errors"):
                logger.warning(f"MJML compilation warnings: {result['errors']}")
            return result.get("html", "")
        return str(result)
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
    Send an email using Resend

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

    recipients = [to] if isinstance(to, str) else to
    html_content = compile_mjml_to_html(mjml_content)

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
# Pre-built Email Templates for Clinic Events
# ============================================


async def send_appointment_confirmed_email(
    to: str,
    patient_name: str,
    doctor_name: str,
    appointment_date,
    appointment_time: str,
    consultation_type: str,
    meeting_link: Optional[str] = None,
) -> dict:
    return await send_email(
        to=to,
        subject=f"Appointment Confirmed - {CLINIC_NAME}",
        mjml_content=appointment_confirmed_template(
            patient_name,
            doctor_name,
            format_display_date(appointment_date),
            appointment_time,
            consultation_type,
            meeting_link,
        ),
    )


async def send_appointment_cancelled_email(
    to: str,
    patient_name: str,
    doctor_name: str,
    appointment_date,
    appointment_time: str,
    reason: Optional[str] = None,
) -> dict:
    return await send_email(
        to=to,
        subject=f"Appointment Cancelled - {CLINIC_NAME}",
        mjml_content=appointment_cancelled_template(
            patient_name, doctor_name, format_display_date(appointment_date), appointment_time, reason
        ),
    )


async def send_payment_receipt_email(
    to: str,
    patient_name: str,
    amount: float,
    payment_method: str,
    transaction_ref: str,
    description: str,
) -> dict:
    """Send payment receipt to the patient"""
    return await send_email(
        to=to,
        subject=f"Payment Received - {CLINIC_NAME}",
        mjml_content=payment_receipt_template(
            patient_name, format_peso(amount), payment_method, transaction_ref, description
        ),
    )
