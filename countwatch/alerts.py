## countwatch/alerts.py

from __future__ import annotations
import os, smtplib
from email.mime.text import MIMEText

import requests

from .utils import Retryable, logger, retry


def send_email(subject: str, body: str) -> bool:
    host = os.getenv("SMTP_HOST"); user = os.getenv("SMTP_USER"); pwd = os.getenv("SMTP_PASS")
    to_addr = os.getenv("ALERT_EMAIL_TO")
    if not all([host, user, pwd, to_addr]):
        return False
    msg = MIMEText(body)
    msg["Subject"] = subject
    msg["From"] = user
    msg["To"] = to_addr
    with smtplib.SMTP(host) as s:
        s.starttls(); s.login(user, pwd); s.sendmail(user, [to_addr], msg.as_string())
    return True


@retry(times=2, delay=1.0)
def _post_slack(url: str, text: str):
    try:
        r = requests.post(url, json={"text": text}, timeout=5)
    except (requests.ConnectionError, requests.Timeout) as e:
        raise Retryable(str(e)) from e
    r.raise_for_status()


def send_slack(text: str) -> bool:
    url = os.getenv("SLACK_WEBHOOK_URL")
    if not url:
        return False
    _post_slack(url, text)
    return True


def notify_failure(path, message: str):
    """Best-effort: alert delivery problems are logged, never raised."""
    try:
        send_email("Count import failure", f"File: {path}\nError: {message}")
    except (OSError, smtplib.SMTPException) as e:
        logger.warning(f"Could not send failure email: {e}")
    try:
        send_slack(f":rotating_light: Count import failed for {path}: {message}")
    except (Retryable, requests.RequestException) as e:
        logger.warning(f"Could not post failure to Slack: {e}")
