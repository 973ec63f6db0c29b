import smtplib
from html import escape
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import List

from config import ADMIN_EMAILS, EMAIL_CONFIG
from logger import get_logger

log = get_logger("emailer")

def send_email(to_addrs: List[str], subject: str, html: str) -> None:
    if not to_addrs:
        log.warning("No recipients for email; skipping.")
        return

    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = EMAIL_CONFIG["from_addr"]
    msg["To"] = ", ".join(to_addrs)

    msg.attach(MIMEText(html, "html"))

    try:
        with smtplib.SMTP(EMAIL_CONFIG["smtp_server"], EMAIL_CONFIG["smtp_port"]) as server:
            server.starttls()
            if EMAIL_CONFIG["smtp_password"]:
                server.login(EMAIL_CONFIG["smtp_username"], EMAIL_CONFIG["smtp_password"])
            server.sendmail(msg["From"], to_addrs, msg.as_string())
        log.info(f"Email sent: {subject} -> {to_addrs}")
    except (smtplib.SMTPException, OSError) as e:
        log.error(f"Failed sending email: {e}")


def send_need_fix_alert(order, stage: str, reason: str) -> None:
    """Tell admins an order record needs manual correction."""
    html = f"""
    <div style="font-family:Segoe UI,Arial,sans-serif; max-width:900px;">
      <h2 style="color:#b00020;">Order needs manual fix</h2>
      <p><b>Record:</b> {escape(str(order.id))}</p>
      <p><b>Partner order id:</b> {escape(str(order.order_id)) if order.order_id is not None else "(unparsed)"}</p>
      <p><b>Stage:</b> {escape(stage)}</p>
      <p><b>State:</b> {escape(str(order.state))}</p>
      <p><b>Reason:</b> {escape(str(reason))}</p>
      <p style="color:#666;">The record is excluded from sync until the flag is cleared. Other orders continue.</p>
    </div>
    """

    send_email(
        ADMIN_EMAILS,
        f"Order Sync NEEDS FIX - record {order.id} ({stage})",
        html,
    )
