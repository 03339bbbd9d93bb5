from __future__ import annotations

import os


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///inscripciones.db",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Comprobantes de pago (almacenamiento local)
    RECEIPTS_DIR = os.getenv("RECEIPTS_DIR", "uploads/comprobantes")
    MAX_CONTENT_LENGTH = 5 * 1024 * 1024

    # Moodle (plataforma de cursos)
    MOODLE_URL = os.getenv("MOODLE_URL", "")
    MOODLE_TOKEN = os.getenv("MOODLE_TOKEN", "")
    MOODLE_TIMEOUT = float(os.getenv("MOODLE_TIMEOUT", "10"))
    MOODLE_STUDENT_ROLE_ID = int(os.getenv("MOODLE_STUDENT_ROLE_ID", "5"))

    # Correo para invitaciones a grupos de Telegram
    EMAIL_HOST = os.getenv("EMAIL_HOST", "")
    EMAIL_PORT = int(os.getenv("EMAIL_PORT", "587"))
    EMAIL_USER = os.getenv("EMAIL_USER", "")
    EMAIL_PASS = os.getenv("EMAIL_PASS", "")
    EMAIL_FROM = os.getenv("EMAIL_FROM", "noreply@inscripciones.local")
    EMAIL_TIMEOUT = float(os.getenv("EMAIL_TIMEOUT", "10"))
