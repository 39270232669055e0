"""Confirmation email sent to the submitter once the workspace exists."""

import logging
import smtplib
import ssl
from email.message import EmailMessage

logger = logging.getLogger(__name__)

DEFAULT_SUBJECT_TEMPLATE = "{identifier} {display_name} project folder has been successfully created"
DEFAULT_BODY_TEMPLATE = "Project folder location: {folder_url}"


def build_confirmation_email(submission, folder_url, subject_template=None, body_template=None):
    """Generate subject and body of the confirmation email.

    Templates are ``str.format`` strings and may use ``identifier``,
    ``display_name``, ``folder_name``, ``email`` and ``folder_url``.

    Returns:
        Tuple of (subject, body)
    """
    fields = {
        "identifier": submission.identifier,
        "display_name": submission.display_name,
        "folder_name": submission.folder_name,
        "email": submission.email,
        "folder_url": folder_url,
    }
    subject = (subject_template or DEFAULT_SUBJECT_TEMPLATE).format(**fields)
    body = (body_template or DEFAULT_BODY_TEMPLATE).format(**fields)
    return subject, body


class SmtpTransport:
    """Sends mail through an SMTP server over implicit TLS."""

    def __init__(self, host, port, sender, password):
        self.host = host
        self.port = port
        self.sender = sender
        self.password = password

    def send(self, to, subject, body):
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = to
        msg.set_content(body)

        context = ssl.create_default_context()
        with smtplib.SMTP_SSL(self.host, self.port, context=context) as server:
            if self.password:
                server.login(self.sender, self.password)
            server.send_message(msg)
        logger.info("Sent confirmation email to %s", to)


class PrintTransport:
    """Prints the email instead of sending it."""

    def send(self, to, subject, body):
        print("\n" + "=" * 80)
        print(f"To: {to}")
        print(f"Subject: {subject}")
        print()
        print(body)
