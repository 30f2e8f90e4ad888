"""
Email Service using Resend

Handles sending emails for signup verification, payment receipts and
application decisions.

Delivery is best effort: every sender returns False on failure and logs the
problem instead of raising, so a provider outage never fails the request
that triggered the email.
"""

import asyncio
import logging
from html import escape

import resend

from beacon_api.core.config import settings

logger = logging.getLogger(__name__)

resend.api_key = settings.resend_api_key

_STYLE = """
        <style>
            body {{ font-family: system-ui, -apple-system, sans-serif; line-height: 1.6; color: #1f2937; }}
            .container {{ max-width: 600px; margin: 0 auto; padding: 40px 20px; }}
            .header {{ color: #7c2d12; margin-bottom: 24px; }}
            .code {{ font-size: 32px; letter-spacing: 8px; font-weight: bold; background-color: #fff7ed; padding: 16px 24px; border-radius: 8px; display: inline-block; }}
            .info-box {{ background-color: #f3f4f6; padding: 16px; border-radius: 8px; margin: 16px 0; }}
            .button {{ display: inline-block; background-color: #c2410c; color: white; padding: 14px 28px; text-decoration: none; border-radius: 8px; margin: 24px 0; }}
            .footer {{ margin-top: 40px; padding-top: 20px; border-top: 1px solid #e5e7eb; color: #6b7280; font-size: 14px; }}
        </style>
"""


async def send_email(
    to_email: str,
    subject: str,
    html_content: str,
) -> bool:
    """
    Send an email using Resend.

    The blocking SDK call runs in a worker thread and is bounded by
    EMAIL_TIMEOUT_SECONDS.

    Args:
        to_email: Recipient email address
        subject: Email subject line
        html_content: HTML content of the email

    Returns:
        True if email was sent successfully
    """
    if not resend.api_key:
        logger.warning("RESEND_API_KEY not set - logging email instead of sending")
        logger.info(f"EMAIL TO: {to_email} | SUBJECT: {subject}")
        return True

    params: resend.Emails.SendParams = {
        "from": settings.email_from,
        "to": [to_email],
        "subject": subject,
        "html": html_content,
    }

    try:
        email = await asyncio.wait_for(
            asyncio.to_thread(resend.Emails.send, params),
            timeout=settings.email_timeout_seconds,
        )
    except TimeoutError:
        logger.error(
            f"Timed out after {settings.email_timeout_seconds}s sending email to {to_email}"
        )
        return False
    except Exception as e:
        logger.error(f"Failed to send email to {to_email}: {e}")
        return False

    logger.info(f"Email sent successfully to {to_email}, id: {email['id']}")
    return True


async def send_otp_email(to_email: str, name: str, otp_code: str) -> bool:
    """Send the signup verification code."""
    safe_name = escape(name)

    html_content = f"""
    <!DOCTYPE html>
    <html>
    <head>
    {_STYLE.format()}
    </head>
    <body>
        <div class="container">
            <h1 class="header">Verify Your Email</h1>

            <p>Hello {safe_name},</p>

            <p>Thank you for signing up for the Beacon Scholarship. Use the code below to verify your email address:</p>

            <p class="code">{otp_code}</p>

            <p><strong>This code expires in {settings.otp_expiry_minutes} minutes.</strong></p>

            <div class="footer">
                <p>If you didn't sign up, you can safely ignore this email.</p>
                <p>Beacon Scholarship</p>
            </div>
        </div>
    </body>
    </html>
    """
    return await send_email(
        to_email=to_email,
        subject="Your Beacon Scholarship verification code",
        html_content=html_content,
    )


async def send_payment_receipt(
    to_email: str,
    name: str,
    payment_id: str,
    order_id: str,
    amount: int,
    currency: str,
) -> bool:
    """Send a receipt after a payment has been verified."""
    safe_name = escape(name)
    safe_payment_id = escape(payment_id)
    safe_order_id = escape(order_id)
    amount_major = f"{amount / 100:,.2f}"

    html_content = f"""
    <!DOCTYPE html>
    <html>
    <head>
    {_STYLE.format()}
    </head>
    <body>
        <div class="container">
            <h1 class="header">Payment Received</h1>

            <p>Hello {safe_name},</p>

            <p>We have received your registration fee. Your application is now submitted for review.</p>

            <div class="info-box">
                <p><strong>Amount:</strong> {escape(currency)} {amount_major}</p>
                <p><strong>Payment ID:</strong> {safe_payment_id}</p>
                <p><strong>Order ID:</strong> {safe_order_id}</p>
            </div>

            <a href="{settings.frontend_url}/dashboard" class="button">View Dashboard</a>

            <div class="footer">
                <p>Keep this email for your records.</p>
                <p>Beacon Scholarship</p>
            </div>
        </div>
    </body>
    </html>
    """
    return await send_email(
        to_email=to_email,
        subject="Beacon Scholarship - payment received",
        html_content=html_content,
    )


async def send_application_decision(to_email: str, name: str, approved: bool) -> bool:
    """Notify an applicant that their application was approved or rejected."""
    safe_name = escape(name)

    if approved:
        title = "Application Approved"
        body = (
            "Congratulations! Your scholarship application has been approved. "
            "Our team will contact you with the next steps."
        )
    else:
        title = "Application Update"
        body = (
            "Thank you for applying. After careful review, we are unable to offer you "
            "a scholarship in this cycle."
        )

    html_content = f"""
    <!DOCTYPE html>
    <html>
    <head>
    {_STYLE.format()}
    </head>
    <body>
        <div class="container">
            <h1 class="header">{title}</h1>

            <p>Hello {safe_name},</p>

            <p>{body}</p>

            <a href="{settings.frontend_url}/dashboard" class="button">View Dashboard</a>

            <div class="footer">
                <p>Beacon Scholarship</p>
            </div>
        </div>
    </body>
    </html>
    """
    return await send_email(
        to_email=to_email,
        subject=f"Beacon Scholarship - {title.lower()}",
        html_content=html_content,
    )
