from __future__ import annotations

import itertools
import smtplib
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app import create_app
from app.core.config import Config
from app.core.errors import IntegrationError
from app.core.extensions import db
from app.core.models import Comprobante, Curso, DatosFacturacion, Person, seed_demo_data


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SECRET_KEY = "test-secret"
    MOODLE_URL = ""
    MOODLE_TOKEN = ""
    EMAIL_HOST = ""


class FakeMoodle:
    def __init__(self, configured: bool = True, fail: bool = False, moodle_user_id: int = 77) -> None:
        self.configured = configured
        self.fail = fail
        self.moodle_user_id = moodle_user_id
        self.calls: list[tuple] = []

    def is_configured(self) -> bool:
        return self.configured

    def enroll(self, moodle_course_id, email, nombres, apellidos):
        self.calls.append((moodle_course_id, email, nombres, apellidos))
        if self.fail:
            raise IntegrationError("Moodle no disponible", "moodle")
        return self.moodle_user_id


class FakeMailer:
    def __init__(self, configured: bool = True, fail: bool = False) -> None:
        self.configured = configured
        self.fail = fail
        self.sent: list[dict] = []

    def is_configured(self) -> bool:
        return self.configured

    def send_invite(self, invite_link, email, **kwargs):
        if self.fail:
            raise smtplib.SMTPException("SMTP caido")
        self.sent.append({"invite_link": invite_link, "email": email, **kwargs})


@pytest.fixture
def app(tmp_path):
    app = create_app(TestConfig)
    app.config["RECEIPTS_DIR"] = str(tmp_path / "comprobantes")
    with app.app_context():
        db.create_all()
        seed_demo_data(db.session)
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def fake_moodle(app):
    fake = FakeMoodle()
    app.extensions["inscripciones"]["platform_client"] = fake
    return fake


@pytest.fixture
def fake_mailer(app):
    fake = FakeMailer()
    app.extensions["inscripciones"]["invite_sender"] = fake
    return fake


@pytest.fixture
def make_refs(app):
    """Crea persona, datos de facturacion y comprobante para una inscripcion."""
    counter = itertools.count(1)

    def _make(ci_pasaporte: str = "0402084040", curso_code: str = "PY-BASICO") -> dict[str, int]:
        n = next(counter)
        persona = Person.query.filter_by(ci_pasaporte=ci_pasaporte).first()
        if persona is None:
            persona = Person(
                ci_pasaporte=ci_pasaporte,
                nombres="Ana",
                apellidos="Torres",
                correo=f"ana{ci_pasaporte}@example.com",
            )
            db.session.add(persona)
        curso = Curso.query.filter_by(nombre_corto_curso=curso_code).one()
        datos = DatosFacturacion(
            razon_social="Ana Torres",
            identificacion_tributaria=ci_pasaporte,
            telefono="0999999999",
            correo_factura="facturas@example.com",
            direccion="Av. Amazonas 123",
        )
        comprobante = Comprobante(
            ruta_comprobante=f"/tmp/comprobante-{n}.pdf",
            tipo_archivo="application/pdf",
            nombre_archivo=f"comprobante-{n}.pdf",
        )
        db.session.add_all([datos, comprobante])
        db.session.commit()
        return {
            "curso_id": curso.id,
            "persona_id": persona.id,
            "facturacion_id": datos.id,
            "comprobante_id": comprobante.id,
        }

    return _make
