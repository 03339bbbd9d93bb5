from __future__ import annotations

import logging

from flask import current_app, jsonify, request

from app.core.errors import AppError, ValidationError
from app.core.extensions import db
from app.inscripciones import inscripciones_bp
from app.inscripciones.catalog import (
    create_comprobante,
    create_curso,
    create_curso_moodle,
    create_datos_facturacion,
    create_descuento,
    create_grupo_telegram,
    create_person,
    delete_comprobante,
    delete_descuento,
    list_cursos_moodle,
    list_grupos_telegram,
    update_curso_moodle,
    update_grupo_telegram,
    update_person_contact,
)
from app.inscripciones.mappers import (
    comprobante_to_dict,
    curso_moodle_to_dict,
    curso_to_dict,
    descuento_to_dict,
    facturacion_to_dict,
    factura_to_dict,
    grupo_telegram_to_dict,
    inscripcion_to_dict,
    person_to_dict,
)
from app.inscripciones.services import UNSET, build_notifier, build_orchestrator
from app.inscripciones.storage import LocalReceiptStorage
from app.inscripciones.validators import (
    validate_factura_payload,
    validate_inscripcion_payload,
    validate_inscripcion_update_payload,
)

logger = logging.getLogger(__name__)


def _json_payload() -> dict:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError("El cuerpo debe ser un objeto JSON")
    return payload


def _storage() -> LocalReceiptStorage:
    return LocalReceiptStorage.from_config(current_app.config)


def _incluir_inactivos() -> bool:
    return (request.args.get("incluir_inactivos") or "").strip().lower() == "true"


def _inscripcion_response(orchestrator, inscripcion) -> dict:
    return inscripcion_to_dict(
        inscripcion,
        orchestrator.repository,
        final_amount=orchestrator.final_amount(inscripcion),
    )


@inscripciones_bp.errorhandler(AppError)
def handle_app_error(exc: AppError):
    if exc.status_code >= 500:
        logger.error("Request %s %s failed: %s", request.method, request.path, exc.message)
    return jsonify(exc.to_dict()), exc.status_code


@inscripciones_bp.errorhandler(ValueError)
def handle_value_error(exc: ValueError):
    db.session.rollback()
    return jsonify({"error": str(exc)}), 400


@inscripciones_bp.post("/personas")
def personas_create():
    person = create_person(_json_payload())
    return jsonify(person_to_dict(person)), 201


@inscripciones_bp.patch("/personas/<int:person_id>/contacto")
def personas_update_contact(person_id: int):
    person = update_person_contact(person_id, _json_payload())
    return jsonify(person_to_dict(person))


@inscripciones_bp.post("/cursos")
def cursos_create():
    curso = create_curso(_json_payload())
    return jsonify(curso_to_dict(curso)), 201


@inscripciones_bp.post("/cursos/<int:curso_id>/moodle")
def cursos_moodle_create(curso_id: int):
    mapping = create_curso_moodle(curso_id, _json_payload())
    return jsonify(curso_moodle_to_dict(mapping)), 201


@inscripciones_bp.patch("/cursos/<int:curso_id>/moodle")
def cursos_moodle_update(curso_id: int):
    mapping = update_curso_moodle(curso_id, _json_payload())
    return jsonify(curso_moodle_to_dict(mapping))


@inscripciones_bp.get("/cursos-moodle")
def cursos_moodle_list():
    return jsonify([curso_moodle_to_dict(row) for row in list_cursos_moodle(_incluir_inactivos())])


@inscripciones_bp.post("/cursos/<int:curso_id>/telegram")
def cursos_telegram_create(curso_id: int):
    grupo = create_grupo_telegram(curso_id, _json_payload())
    return jsonify(grupo_telegram_to_dict(grupo)), 201


@inscripciones_bp.patch("/cursos/<int:curso_id>/telegram")
def cursos_telegram_update(curso_id: int):
    grupo = update_grupo_telegram(curso_id, _json_payload())
    return jsonify(grupo_telegram_to_dict(grupo))


@inscripciones_bp.get("/grupos-telegram")
def grupos_telegram_list():
    return jsonify([grupo_telegram_to_dict(row) for row in list_grupos_telegram(_incluir_inactivos())])


@inscripciones_bp.post("/datos-facturacion")
def datos_facturacion_create():
    datos = create_datos_facturacion(_json_payload())
    return jsonify(facturacion_to_dict(datos)), 201


@inscripciones_bp.post("/comprobantes")
def comprobantes_create():
    comprobante = create_comprobante(request.files.get("comprobante"), _storage())
    return jsonify(comprobante_to_dict(comprobante)), 201


@inscripciones_bp.delete("/comprobantes/<int:comprobante_id>")
def comprobantes_delete(comprobante_id: int):
    delete_comprobante(comprobante_id, _storage())
    return "", 204


@inscripciones_bp.post("/descuentos")
def descuentos_create():
    descuento = create_descuento(_json_payload())
    return jsonify(descuento_to_dict(descuento)), 201


@inscripciones_bp.delete("/descuentos/<int:descuento_id>")
def descuentos_delete(descuento_id: int):
    delete_descuento(descuento_id)
    return "", 204


@inscripciones_bp.post("/inscripciones")
def inscripciones_create():
    values = validate_inscripcion_payload(_json_payload())
    orchestrator = build_orchestrator()
    inscripcion = orchestrator.create_inscription(**values)
    return jsonify(_inscripcion_response(orchestrator, inscripcion)), 201


@inscripciones_bp.get("/inscripciones")
def inscripciones_list():
    curso_id = request.args.get("curso_id", type=int)
    raw_matricula = (request.args.get("matricula") or "").strip().lower()
    matricula = {"true": True, "false": False}.get(raw_matricula)
    orchestrator = build_orchestrator()
    rows = orchestrator.list_inscriptions(curso_id=curso_id, matricula=matricula)
    return jsonify([_inscripcion_response(orchestrator, row) for row in rows])


@inscripciones_bp.get("/inscripciones/<int:inscripcion_id>")
def inscripciones_detail(inscripcion_id: int):
    orchestrator = build_orchestrator()
    inscripcion = orchestrator.get_inscription(inscripcion_id)
    return jsonify(_inscripcion_response(orchestrator, inscripcion))


@inscripciones_bp.patch("/inscripciones/<int:inscripcion_id>")
def inscripciones_update(inscripcion_id: int):
    values = validate_inscripcion_update_payload(_json_payload())
    orchestrator = build_orchestrator()
    inscripcion = orchestrator.update_inscription(
        inscripcion_id,
        descuento_id=values.get("descuento_id", UNSET),
        matricula=values.get("matricula", UNSET),
    )
    return jsonify(_inscripcion_response(orchestrator, inscripcion))


@inscripciones_bp.post("/inscripciones/<int:inscripcion_id>/reenviar-telegram")
def inscripciones_resend_invite(inscripcion_id: int):
    sent = build_notifier().resend_invite(inscripcion_id)
    return jsonify({"inscripcion_id": inscripcion_id, "enviado": sent})


@inscripciones_bp.post("/facturas")
def facturas_create():
    values = validate_factura_payload(_json_payload())
    factura = build_orchestrator().create_invoice(**values)
    return jsonify(factura_to_dict(factura)), 201


@inscripciones_bp.post("/facturas/<int:factura_id>/verificar-pago")
def facturas_verify_payment(factura_id: int):
    factura = build_orchestrator().verify_payment(factura_id)
    return jsonify(factura_to_dict(factura))


@inscripciones_bp.delete("/facturas/<int:factura_id>")
def facturas_delete(factura_id: int):
    build_orchestrator().delete_invoice(factura_id)
    return "", 204
