import aiosmtplib
from email.message import EmailMessage
from typing import List, Optional
from src.common.config import settings

async def send_email(subject: str, body: str, recipients: List[str], html_body: Optional[str] = None) -> None:
    """
    Sends an email asynchronously using aiosmtplib.

    Args:
        subject (str): The subject of the email.
        body (str): The plain text content of the email.
        recipients (List[str]): List of recipient email addresses.
        html_body (Optional[str]): HTML alternative of the body.
    """
    message = EmailMessage()
    message["From"] = settings.EMAIL_SENDER
    message["To"] = ", ".join(recipients)
    message["Subject"] = subject
    message.set_content(body)

    # If HTML content is provided, add it as an alternative.
    if html_body:
        message.add_alternative(html_body, subtype="html")

    await aiosmtplib.send(
        message,
        hostname=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        username=settings.SMTP_USER,
        password=settings.SMTP_PASSWORD,
        start_tls=settings.SMTP_START_TLS,
    )


def _html(heading: str, paragraphs: List[str]) -> str:
    content = "\n".join(f'        <p style="font-size: 16px;">{paragraph}</p>' for paragraph in paragraphs)
    return f"""
<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
</head>
<body style="font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
    <div style="background: #0f766e; padding: 24px; text-align: center; border-radius: 12px 12px 0 0;">
        <h1 style="color: white; margin: 0; font-size: 24px;">{heading}</h1>
    </div>
    <div style="background: #ffffff; padding: 24px; border: 1px solid #e5e7eb; border-top: none; border-radius: 0 0 12px 12px;">
{content}
    </div>
</body>
</html>
"""


async def send_token_confirmation_email(
    recipient_email: str,
    patient_name: str,
    token_number: str,
    priority: str,
    position: Optional[int],
    estimated_wait_minutes: int,
) -> None:
    """
    Confirms a freshly issued token with its starting place in the queue.

    Args:
        recipient_email (str): The patient's email address.
        patient_name (str): Name used in the greeting.
        token_number (str): The human-facing token number.
        priority (str): Priority name, e.g. "SENIOR_CITIZEN".
        position (Optional[int]): 1-based queue position, None when unranked.
        estimated_wait_minutes (int): Wait estimate at the time of issue.
    """
    lines = [
        f"Dear {patient_name},",
        f"Your token {token_number} has been generated with {priority.replace('_', ' ').lower()} priority.",
    ]
    if position is not None:
        lines.append(f"You are number {position} in the queue, estimated wait about {estimated_wait_minutes} minutes.")
    lines.append("We will e-mail you as the queue moves.")

    await send_email(
        f"Token Confirmation - {token_number}",
        "\n\n".join(lines),
        [recipient_email],
        html_body=_html("Token Confirmation", lines),
    )


async def send_queue_update_email(
    recipient_email: str,
    patient_name: str,
    token_number: str,
    position: int,
    estimated_wait_minutes: int,
    previous_position: Optional[int] = None,
    reason: Optional[str] = None,
    approaching: bool = False,
) -> None:
    """
    Tells a patient their queue position changed.

    ``previous_position`` is only passed when the patient moved back, together
    with the ``reason`` shown to them.
    """
    moved_back = previous_position is not None and previous_position < position
    if moved_back:
        subject = f"Queue Position Update - {token_number}"
    elif position == 1:
        subject = f"You're Next in Line - {token_number}"
    elif approaching:
        subject = f"Your Turn is Approaching - {token_number}"
    else:
        subject = f"Queue Update - {token_number}"

    lines = [f"Dear {patient_name},"]
    if moved_back:
        lines.append(f"Your position for token {token_number} changed from {previous_position} to {position}.")
        if reason:
            lines.append(reason)
    elif position == 1:
        lines.append(f"Token {token_number} is next in line. Please stay near the consultation room.")
    else:
        lines.append(f"Token {token_number} is now number {position} in the queue.")
    if position > 1:
        lines.append(f"Estimated wait: about {estimated_wait_minutes} minutes.")

    await send_email(subject, "\n\n".join(lines), [recipient_email], html_body=_html("Queue Update", lines))


async def send_turn_email(recipient_email: str, patient_name: str, token_number: str) -> None:
    lines = [f"Dear {patient_name},", f"It's your turn! Token {token_number} has been called. Please proceed to the consultation room."]
    await send_email(f"It's Your Turn - {token_number}", "\n\n".join(lines), [recipient_email],
                     html_body=_html("It's Your Turn", lines))


async def send_consultation_completed_email(recipient_email: str, patient_name: str, token_number: str) -> None:
    lines = [
        f"Dear {patient_name},",
        f"Your consultation for token {token_number} is complete. Thank you for visiting.",
    ]
    await send_email(f"Consultation Completed - {token_number}", "\n\n".join(lines), [recipient_email],
                     html_body=_html("Consultation Completed", lines))
