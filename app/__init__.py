from __future__ import annotations

import logging

import click
from flask import Flask, jsonify

from app.core.config import Config
from app.core.errors import AppError
from app.core.extensions import db, migrate
from app.core.models import Curso, seed_demo_data
from app.inscripciones import inscripciones_bp
from app.integrations.mail import TelegramInviteMailer
from app.integrations.moodle import MoodleClient

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def create_app(config_object: type[Config] | None = None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_object or Config)
    configure_logging(app)

    db.init_app(app)
    migrate.init_app(app, db)

    # Clientes externos; los tests los sustituyen por dobles
    app.extensions["inscripciones"] = {
        "platform_client": MoodleClient.from_config(app.config),
        "invite_sender": TelegramInviteMailer.from_config(app.config),
    }

    app.register_blueprint(inscripciones_bp)

    register_cli(app)
    register_routes(app)
    return app


def configure_logging(app: Flask) -> None:
    level_name = str(app.config.get("LOG_LEVEL", "INFO")).upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(format=LOG_FORMAT)
    root.setLevel(level)
    app.logger.setLevel(level)


def register_routes(app: Flask) -> None:
    @app.get("/health")
    def health():
        return jsonify({"status": "ok"})

    @app.errorhandler(404)
    def not_found(_error):
        return jsonify({"error": "Recurso no encontrado"}), 404


def register_cli(app: Flask) -> None:
    @app.cli.command("seed-demo")
    @click.option("--reset", is_flag=True, help="Delete existing data before seed.")
    def seed_demo(reset: bool) -> None:
        """Seed demo courses, discount and integration mappings."""
        if reset:
            db.drop_all()
            db.create_all()
        if not Curso.query.first():
            seed_demo_data(db.session)
            click.echo("Demo data seeded.")
        else:
            click.echo("Seed skipped: existing courses found.")

    @app.cli.command("moodle-retry")
    @click.argument("inscripcion_id", type=int)
    def moodle_retry(inscripcion_id: int) -> None:
        """Retry the Moodle enrollment of a matriculated inscription."""
        from app.inscripciones.services import build_notifier

        try:
            enrolled = build_notifier().retry_platform_enrollment(inscripcion_id)
        except AppError as exc:
            raise click.ClickException(exc.message) from exc
        if enrolled:
            click.echo(f"Inscripcion {inscripcion_id} enrolled in Moodle.")
        else:
            click.echo(f"Inscripcion {inscripcion_id} skipped (not matriculated, not configured or no mapping).")

    @app.cli.command("telegram-resend")
    @click.argument("inscripcion_id", type=int)
    def telegram_resend(inscripcion_id: int) -> None:
        """Resend the Telegram group invitation e-mail."""
        from app.inscripciones.services import build_notifier

        if build_notifier().resend_invite(inscripcion_id):
            click.echo(f"Invite resent for inscripcion {inscripcion_id}.")
        else:
            click.echo(f"Invite not sent for inscripcion {inscripcion_id}.")
