# expediter/mail.py
"""Outbound e-mail for invoices and proposals."""

from __future__ import annotations

import logging
import smtplib
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formatdate, make_msgid

from flask import current_app, render_template

from expediter.errors import DeliveryError, ValidationError
from expediter.pdf_cache import decode_payload

log = logging.getLogger(__name__)

SUBJECTS = {
    'invoice': "Invoice {document_id} - {title}",
    'proposal': "Proposal: {title} - {document_id}",
}


class MailRelay:
    """SMTP relay configured from ``SMTP_*`` / ``EMAIL_FROM`` settings."""

    def __init__(self, host: str, port: int = 587, secure: bool = False, user: str = '',
                 password: str = '', sender: str = '', timeout: float = 30) -> None:
        self.host = host
        self.port = port
        self.secure = secure
        self.user = user
        self.password = password
        self.sender = sender or user
        self.timeout = timeout

    @classmethod
    def from_config(cls, config) -> 'MailRelay':
        return cls(
            host=config.get('SMTP_HOST') or 'smtp.gmail.com',
            port=int(config.get('SMTP_PORT') or 587),
            secure=bool(config.get('SMTP_SECURE')),
            user=config.get('SMTP_USER') or '',
            password=config.get('SMTP_PASSWORD') or '',
            sender=config.get('EMAIL_FROM') or '',
            timeout=float(config.get('MAIL_TIMEOUT') or 30),
        )

    def build_message(self, to: str, subject: str, text: str, html: str,
                      attachment: dict | None = None) -> MIMEMultipart:
        msg = MIMEMultipart('mixed')
        msg['Subject'] = subject
        msg['From'] = self.sender
        msg['To'] = to
        msg['Date'] = formatdate(localtime=True)
        msg['Message-ID'] = make_msgid()

        body = MIMEMultipart('alternative')
        body.attach(MIMEText(text or '', 'plain'))
        body.attach(MIMEText(html or '', 'html'))
        msg.attach(body)

        if attachment:
            content = attachment['content']
            if isinstance(content, str):
                content = decode_payload(content)
            filename = attachment.get('filename') or 'document.pdf'
            part = MIMEApplication(content, _subtype='pdf', Name=filename)
            part['Content-Disposition'] = f'attachment; filename="{filename}"'
            msg.attach(part)
        return msg

    def _connect(self) -> smtplib.SMTP:
        if self.secure:
            return smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
        server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        if self.user:
            server.starttls()
        return server

    def send(self, to: str, subject: str, text: str, html: str,
             attachment: dict | None = None) -> dict:
        """Send one message; returns ``{"message_id": ...}``.

        ``attachment`` is ``{"filename": ..., "content": bytes | base64 str}``.
        """
        if not to:
            raise ValidationError("Recipient e-mail address is required", field='to')
        if not self.sender:
            raise DeliveryError("EMAIL_FROM is not configured")
        msg = self.build_message(to, subject, text, html, attachment)
        log.info("Sending e-mail to %s via %s:%s subject=%r", to, self.host, self.port, subject)
        try:
            with self._connect() as server:
                if self.user:
                    server.login(self.user, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            log.exception("Mail relay %s:%s failed for %s", self.host, self.port, to)
            raise DeliveryError(f"Failed to send e-mail: {e}") from e
        return {'message_id': msg['Message-ID']}


def compose_email(view: dict, subject: str | None = None, text: str | None = None,
                  html: str | None = None) -> dict:
    """Subject and bodies for a document view, honouring caller overrides."""
    kind = view['kind']
    context = {'view': view, 'company': view['sender']}
    return {
        'subject': subject or SUBJECTS[kind].format(document_id=view['document_id'],
                                                    title=view['project']['title']),
        'text': text or render_template(f'email/{kind}.txt', **context),
        'html': html or render_template(f'email/{kind}.html', **context),
    }


def current_relay() -> MailRelay:
    return current_app.extensions['mail_relay']
