import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Dict

import aiosmtplib

from app.api.core.config import settings
from app.api.core.dependencies.email.mailer_templates import email_templates

logger = logging.getLogger("app")


def render_email(template_name: str, context: Dict[str, Any]) -> str:
    template = email_templates.get_template(template_name)
    return template.render(**context)


async def send_email(
    template_name: str, subject: str, recipient: str, context: Dict[str, Any]
) -> bool:
    """
    Render a template and deliver it through the provider's SMTP relay.

    Args:
        template_name: File name under the email templates directory.
        subject: Message subject.
        recipient: Destination address.
        context: Template variables.

    Returns:
        True when the message was handed to the relay. Failures are logged
        and reported as False, never raised.
    """
    if not settings.MAIL_PASSWORD:
        logger.info(f"Email provider key not configured, skipping email to {recipient}")
        return False

    try:
        if not recipient or recipient == "None":
            logger.error(f"Invalid recipient email: {recipient}")
            return False

        html_content = render_email(template_name, context)

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = settings.EMAIL
        msg["To"] = recipient

        msg.attach(MIMEText(html_content, "html"))

        await aiosmtplib.send(
            msg,
            hostname=settings.SMTP_SERVER,
            port=settings.SMTP_PORT,
            username=settings.MAIL_USERNAME,
            password=settings.MAIL_PASSWORD,
            start_tls=True,
        )

        logger.info(f"Email sent successfully to {recipient}")
        return True

    except Exception as e:
        logger.error(f"Failed to send email to {recipient}: {str(e)}", exc_info=True)
        return False
