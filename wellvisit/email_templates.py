"""
MJML Email Templates
Patient-facing emails for appointment and payment events
"""

from typing import Optional

from .config import CLINIC_NAME, FRONTEND_URL

# Clinic theme colors
THEME = {
    "primary": "#2563eb",
    "background": "#f8fafc",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
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
            <mj-button href="{cta_url}" background-color="{THEME['primary']}" color="#ffffff"
              font-weight="600" border-radius="8px" padding="18px 40px" font-size="16px">
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
          <mj-all font-family="-apple-system, 'Segoe UI', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="#ffffff" padding="32px 40px 48px 40px">
          <mj-column>
            <mj-text font-size="14px" font-weight="600" color="{THEME['primary']}" padding="0 0 16px 0">
              {CLINIC_NAME}
            </mj-text>
            <mj-divider border-color="{THEME['border']}" border-width="1px" padding="0 0 24px 0" />
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" padding="0 0 16px 0">
              {title}
            </mj-text>
            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="#94a3b8" padding="0">
              You're receiving this because you have an account with {CLINIC_NAME}.
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def _detail_rows(rows: list[tuple[str, str]]) -> str:
    return "\n".join(
        f"""
    <mj-text padding="4px 0">
      <strong>{label}:</strong> {value}
    </mj-text>"""
        for label, value in rows
    )


def appointment_confirmed_template(
    patient_name: str,
    doctor_name: str,
    appointment_date: str,
    appointment_time: str,
    consultation_type: str,
    meeting_link: Optional[str] = None,
) -> str:
    rows = [
        ("Doctor", f"Dr. {doctor_name}"),
        ("Date", appointment_date),
        ("Time", appointment_time),
        ("Consultation", consultation_type),
    ]
    if meeting_link:
        rows.append(("Meeting link", f'<a href="{meeting_link}">{meeting_link}</a>'))

    content = f"""
    <mj-text>Hi {patient_name},</mj-text>
    <mj-text>Your appointment has been confirmed. Here are the details:</mj-text>
    {_detail_rows(rows)}
    <mj-text color="{THEME['text_muted']}" padding="16px 0 0 0">
      Please arrive 15 minutes early for in-person visits.
    </mj-text>
    """
    return get_base_template(
        title="Appointment Confirmed",
        preview_text=f"Your appointment with Dr. {doctor_name} is confirmed",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/appointments",
        cta_label="View Appointment",
    )


def appointment_cancelled_template(
    patient_name: str,
    doctor_name: str,
    appointment_date: str,
    appointment_time: str,
    reason: Optional[str] = None,
) -> str:
    reason_text = f"<mj-text><strong>Reason:</strong> {reason}</mj-text>" if reason else ""
    content = f"""
    <mj-text>Hi {patient_name},</mj-text>
    <mj-text>
      Your appointment with Dr. {doctor_name} on {appointment_date} at {appointment_time} has been cancelled.
    </mj-text>
    {reason_text}
    <mj-text>You can book a new appointment at any time.</mj-text>
    """
    return get_base_template(
        title="Appointment Cancelled",
        preview_text="Your appointment has been cancelled",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/book-appointment",
        cta_label="Book Again",
    )


def payment_receipt_template(
    patient_name: str,
    amount: str,
    payment_method: str,
    transaction_ref: str,
    description: str,
) -> str:
    rows = [
        ("Amount", amount),
        ("Method", payment_method),
        ("Reference", transaction_ref),
        ("For", description),
    ]
    content = f"""
    <mj-text>Hi {patient_name},</mj-text>
    <mj-text>We received your payment. Thank you!</mj-text>
    {_detail_rows(rows)}
    """
    return get_base_template(
        title="Payment Received",
        preview_text=f"Payment of {amount} received",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/payments",
        cta_label="View Payments",
    )
