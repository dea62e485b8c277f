# utils/mail.py
import logging
import smtplib
import socket
import ssl
from email.message import EmailMessage
from typing import Optional

from flask import current_app

__all__ = ["send_email", "send_reset_code_email", "mask_email"]

_log = logging.getLogger("mail")
_PORT_PLAN = [("STARTTLS", 587), ("STARTTLS", 2525), ("SSL", 465)]


def mask_email(s: Optional[str]) -> str:
    if not s:
        return ""
    if "@" in s:
        user, dom = s.split("@", 1)
        return f"{user[:1]}***@{dom[:1]}***"
    return (s[:6] + "…") if len(s) > 6 else s


def send_email(*, to: str, subject: str, html: str = "", text: str = "") -> None:
    """
    Sends an email via the Brevo/Sendinblue SMTP relay.
    Required config (env):
      - BREVO_LOGIN       (e.g. 9b....@smtp-brevo.com)
      - BREVO_PASSWORD    (xsmtpsib-... key)
      - MAIL_FROM         (e.g. 'Mumbai Plus <no-reply@mumbaiplus.in>')
    Optional:
      - BREVO_HOST        (default: smtp-relay.brevo.com)
    """
    cfg = current_app.config
    host      = cfg.get("BREVO_HOST") or "smtp-relay.brevo.com"
    login     = cfg.get("BREVO_LOGIN")
    password  = cfg.get("BREVO_PASSWORD")
    mail_from = cfg.get("MAIL_FROM")

    if not login:
        raise RuntimeError("BREVO_LOGIN is not set.")
    if not password:
        raise RuntimeError("BREVO_PASSWORD is not set.")
    if not mail_from:
        raise RuntimeError("MAIL_FROM is not set.")

    msg = EmailMessage()
    msg["From"] = mail_from
    msg["To"] = to
    msg["Subject"] = subject
    msg.set_content(text or "")
    if html:
        msg.add_alternative(html, subtype="html")

    last_err: Optional[Exception] = None

    for mode, port in _PORT_PLAN:
        try:
            ctx = ssl.create_default_context()
            if mode == "SSL":
                with smtplib.SMTP_SSL(host, port, context=ctx, timeout=20) as s:
                    s.login(login, password)
                    s.send_message(msg)
            else:
                with smtplib.SMTP(host, port, timeout=20) as s:
                    s.ehlo()
                    s.starttls(context=ctx)
                    s.ehlo()
                    s.login(login, password)
                    s.send_message(msg)

            _log.info("[mail] sent via %s:%s as %s to %s", host, port, mask_email(login), mask_email(to))
            return
        except (smtplib.SMTPException, OSError, socket.error) as e:
            last_err = e
            _log.warning("[mail] attempt %s %s:%s failed: %r", mode, host, port, e)

    raise RuntimeError(f"All SMTP attempts failed; last error: {last_err!r}")


def send_reset_code_email(to: str, code: str, ttl_minutes: int) -> None:
    app_name = current_app.config.get("APP_NAME", "Mumbai Plus")
    html = f"""
      <div style="font-family:system-ui,Segoe UI,Roboto,Arial">
        <h2>🔐 पासवर्ड रीसेट OTP</h2>
        <p>आपने अपना पासवर्ड रीसेट करने का अनुरोध किया है। कृपया नीचे दिए गए OTP का उपयोग करें:</p>
        <div style="font-size:32px;font-weight:700;letter-spacing:8px;font-family:monospace">{code}</div>
        <p>यह OTP <strong>{ttl_minutes} मिनट</strong> के लिए वैध है।</p>
        <p>यदि आपने यह अनुरोध नहीं किया है, तो कृपया इस ईमेल को अनदेखा करें।</p>
        <p style="color:#666;font-size:12px">&copy; {app_name}</p>
      </div>
    """
    text = (
        f"पासवर्ड रीसेट OTP\n\nआपका OTP है: {code}\n\n"
        f"यह OTP {ttl_minutes} मिनट के लिए वैध है।\n"
        "किसी के साथ OTP साझा न करें।"
    )
    send_email(to=to, subject=f"Password Reset OTP - {app_name}", html=html, text=text)
