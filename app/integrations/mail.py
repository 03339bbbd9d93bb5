from __future__ import annotations

from email.message import EmailMessage
from html import escape
import logging
import smtplib

logger = logging.getLogger(__name__)

INVITE_SUBJECT = "Unete al grupo de Telegram de {curso}"

_INVITE_TEXT = """Hola {nombre},

Tu matricula en el curso {curso} ha sido confirmada.

Unete al grupo de Telegram del curso con este enlace:
{enlace}

Fecha de inicio: {fecha_inicio}
"""

_INVITE_HTML = """<html>
  <body>
    <p>Hola <strong>{nombre}</strong>,</p>
    <p>Tu matricula en el curso <strong>{curso}</strong> ha sido confirmada.</p>
    <p><a href="{enlace}">Unirse al grupo de Telegram</a></p>
    <p>Fecha de inicio: {fecha_inicio}</p>
  </body>
</html>
"""


class TelegramInviteMailer:
    """Envia por correo el enlace de invitacion al grupo de Telegram del curso."""

    def __init__(
        self,
        host: str | None,
        port: int = 587,
        user: str | None = None,
        password: str | None = None,
        sender: str | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.host = host or ""
        self.port = port
        self.user = user or ""
        self.password = password or ""
        self.sender = sender or self.user
        self.timeout = timeout

    @classmethod
    def from_config(cls, config) -> "TelegramInviteMailer":
        return cls(
            host=config.get("EMAIL_HOST"),
            port=config.get("EMAIL_PORT", 587),
            user=config.get("EMAIL_USER"),
            password=config.get("EMAIL_PASS"),
            sender=config.get("EMAIL_FROM"),
            timeout=config.get("EMAIL_TIMEOUT", 10.0),
        )

    def is_configured(self) -> bool:
        return bool(self.host and self.user and self.password)

    def build_message(
        self,
        invite_link: str,
        email: str,
        nombre: str = "",
        curso: str = "",
        fecha_inicio: str = "",
    ) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = email
        message["Subject"] = INVITE_SUBJECT.format(curso=curso)
        message.set_content(
            _INVITE_TEXT.format(nombre=nombre, curso=curso, enlace=invite_link, fecha_inicio=fecha_inicio)
        )
        message.add_alternative(
            _INVITE_HTML.format(
                nombre=escape(nombre),
                curso=escape(curso),
                enlace=escape(invite_link, quote=True),
                fecha_inicio=escape(fecha_inicio),
            ),
            subtype="html",
        )
        return message

    def send_invite(
        self,
        invite_link: str,
        email: str,
        nombre: str = "",
        curso: str = "",
        fecha_inicio: str = "",
    ) -> None:
        """Envia la invitacion; los errores SMTP y de red se propagan como OSError."""
        message = self.build_message(invite_link, email, nombre, curso, fecha_inicio)
        logger.info("Sending Telegram invite for %s to %s", curso, email)
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            smtp.starttls()
            smtp.login(self.user, self.password)
            smtp.send_message(message)
        logger.info("Telegram invite sent to %s", email)
