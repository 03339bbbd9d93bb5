from flask import Blueprint

inscripciones_bp = Blueprint("inscripciones", __name__, url_prefix="/api")

from app.inscripciones import routes  # noqa: E402,F401
