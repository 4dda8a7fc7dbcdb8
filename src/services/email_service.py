"""Email service for account notifications."""
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional

from src.infrastructure.config import settings
from qi_utils.logger_utils import logger


def send_email(to_email: str, subject: str, html_body: str, text_body: Optional[str] = None) -> bool:
    """Send an email using SMTP."""
    if not settings.MAIL_USERNAME or not settings.MAIL_PASSWORD:
        logger.warning("Email not configured - MAIL_USERNAME or MAIL_PASSWORD missing")
        logger.warning(f"Attempted to send email to {to_email} with subject: {subject}")
        return False

    try:
        msg = MIMEMultipart('alternative')
        msg['Subject'] = subject
        msg['From'] = settings.MAIL_DEFAULT_SENDER or settings.MAIL_USERNAME
        msg['To'] = to_email

        # Attach text and HTML parts
        if text_body:
            msg.attach(MIMEText(text_body, 'plain', 'utf-8'))
        msg.attach(MIMEText(html_body, 'html', 'utf-8'))

        # Connect and send
        with smtplib.SMTP(settings.MAIL_SERVER, settings.MAIL_PORT) as server:
            if settings.MAIL_USE_TLS:
                server.starttls()
            server.login(settings.MAIL_USERNAME, settings.MAIL_PASSWORD)
            server.sendmail(msg['From'], to_email, msg.as_string())

        logger.info(f"Email sent successfully to {to_email} - Subject: {subject}")
        return True
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Failed to send email to {to_email}: {e}", exc_info=True)
        logger.error(f"Email config - Server: {settings.MAIL_SERVER}:{settings.MAIL_PORT}, TLS: {settings.MAIL_USE_TLS}")
        return False


def send_password_reset_email(to_email: str, reset_token: str, base_url: Optional[str] = None) -> bool:
    """Send the password reset link."""
    url_base = settings.BASE_URL or base_url or ""
    reset_url = f"{url_base}/auth/reset-password/{reset_token}"

    html_body = f"""
    <!DOCTYPE html>
    <html lang="en">
    <head><meta charset="UTF-8"></head>
    <body style="font-family: Arial, sans-serif;">
        <h2>QuizIt</h2>
        <p>We received a request to reset your password.</p>
        <p><a href="{reset_url}">Choose a new password</a></p>
        <p>The link expires in {settings.PASSWORD_RESET_TTL_HOURS} hour(s). If you did not ask for this, ignore this email.</p>
    </body>
    </html>
    """
    text_body = f"Reset your QuizIt password: {reset_url}"
    return send_email(to_email, "Reset your QuizIt password", html_body, text_body)
