import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from app.core.config import settings

SENDER_NAME = settings.APP_NAME
SENDER_EMAIL = settings.MAIL_FROM


def send_email_html(to_email: str, subject: str, html: str) -> None:
    message = MIMEMultipart("alternative")
    message["Subject"] = subject
    message["From"] = formataddr((SENDER_NAME, SENDER_EMAIL))
    message["To"] = to_email
    message.attach(MIMEText(html, "html"))

    smtp_class = smtplib.SMTP_SSL if settings.SMTP_USE_SSL else smtplib.SMTP
    with smtp_class(settings.SMTP_HOST, settings.SMTP_PORT) as server:
        if settings.SMTP_USER:
            server.login(settings.SMTP_USER, settings.SMTP_PASSWORD or "")
        server.sendmail(SENDER_EMAIL, [to_email], message.as_string())
