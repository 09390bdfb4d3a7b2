import os
from datetime import datetime
from typing import Optional, List, Union, Dict, Any
from jinja2 import Environment, FileSystemLoader, select_autoescape
import resend
from app.core.config import settings

# Templates live next to this module in templates/
TEMPLATE_DIR = os.path.join(os.path.dirname(__file__), "templates")
env = Environment(
    loader=FileSystemLoader(TEMPLATE_DIR),
    autoescape=select_autoescape(["html", "xml"]),
)

resend.api_key = settings.RESEND_API_KEY

APP_NAME = "Leonardo School"


class EmailError(Exception):
    """Raised when Resend rejects or fails to deliver a message"""


async def send_email(
    subject: str,
    recipient: Union[str, List[str]],
    html_content: Optional[str] = None,
    text_content: Optional[str] = None,
    sender: Optional[str] = None,
    reply_to: Optional[str] = None,
    tags: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    """
    Send an email via the Resend SDK.

    Args:
        subject: Email subject line
        recipient: Single email or list of emails (max 50)
        html_content: HTML version of the email
        text_content: Plain text version of the email
        sender: Sender email (defaults to settings.RESEND_FROM_EMAIL)
        reply_to: Reply-to email address
        tags: Tracking tags, sent to Resend as name/value pairs

    Returns:
        Dict containing the Resend email id

    Raises:
        EmailError: If sending fails
    """
    params: resend.Emails.SendParams = {
        "from": sender or settings.RESEND_FROM_EMAIL,
        "to": [recipient] if isinstance(recipient, str) else recipient,
        "subject": subject,
    }

    if html_content:
        params["html"] = html_content
    if text_content:
        params["text"] = text_content
    if reply_to:
        params["reply_to"] = [reply_to] if isinstance(reply_to, str) else reply_to
    if tags:
        params["tags"] = [{"name": k, "value": v} for k, v in tags.items()]

    try:
        response = resend.Emails.send(params)
        if not response or not response.get("id"):
            raise EmailError("Invalid response from Resend API - no email ID returned")
        return response

    except EmailError:
        raise
    except Exception as e:
        if hasattr(e, 'status_code'):
            raise EmailError(f"Resend API error ({e.status_code}): {str(e)}")
        raise EmailError(f"Failed to send email: {str(e)}")


def _format_date(value: Optional[datetime]) -> Optional[str]:
    return value.strftime("%d/%m/%Y %H:%M") if value else None


async def send_simulation_assigned_email(
    email: str,
    name: str,
    simulation_title: str,
    simulation_url: str,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    duration_minutes: int = 0,
    notes: Optional[str] = None,
) -> Dict[str, Any]:
    """Tell a student a simulation was assigned to them (directly or via a group)."""
    try:
        tpl = env.get_template("simulation_assigned.html")
        html = tpl.render(
            name=name,
            app_name=APP_NAME,
            simulation_title=simulation_title,
            simulation_url=simulation_url,
            start_date=_format_date(start_date),
            end_date=_format_date(end_date),
            duration_minutes=duration_minutes,
            notes=notes,
            support_email=settings.RESEND_FROM_EMAIL,
        )

        lines = [
            f"{APP_NAME} - New simulation assigned",
            "",
            f"Hi {name}, the simulation \"{simulation_title}\" has been assigned to you.",
        ]
        if start_date:
            lines.append(f"Opens: {_format_date(start_date)}")
        if end_date:
            lines.append(f"Closes: {_format_date(end_date)}")
        if duration_minutes:
            lines.append(f"Duration: {duration_minutes} minutes")
        if notes:
            lines.append(f"Notes: {notes}")
        lines += ["", f"Open it here: {simulation_url}"]

        return await send_email(
            subject=f"New simulation: {simulation_title}",
            recipient=email,
            html_content=html,
            text_content="\n".join(lines),
            tags={"type": "simulation-assigned", "app": "leonardo-simulations"},
        )

    except Exception as e:
        raise EmailError(f"Failed to send simulation email to {email}: {str(e)}")
