from __future__ import annotations

import re
from datetime import date
from decimal import Decimal, InvalidOperation

from app.core.errors import ValidationError
from app.core.identity import IDENTITY_ERROR_MESSAGE, validate_ci_pasaporte
from app.core.models import TipoDescuento

MAX_NUMERO_LENGTH = 100
_NUMERO_FACTURA_RE = re.compile(r"[A-Z0-9-]+")
_EMAIL_RE = re.compile(r"[^@\s]+@[^@\s]+\.[^@\s]+")

Errors = list[dict[str, str]]


def _error(field: str, message: str) -> dict[str, str]:
    return {"field": field, "message": message}


def raise_if_errors(errors: Errors, message: str = "Datos invalidos") -> None:
    if errors:
        raise ValidationError(message, errors)


def _text(payload: dict, key: str) -> str:
    value = payload.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        return str(value).strip()
    return value.strip()


def _required_text(payload: dict, key: str, errors: Errors, max_length: int = 255) -> str:
    value = _text(payload, key)
    if not value:
        errors.append(_error(key, f"Falta {key}"))
    elif len(value) > max_length:
        errors.append(_error(key, f"{key} supera {max_length} caracteres"))
    return value


def _validate_email(value: str, field: str, errors: Errors) -> str:
    email = (value or "").strip()
    if not email:
        errors.append(_error(field, f"Falta {field}"))
    elif not _EMAIL_RE.fullmatch(email):
        errors.append(_error(field, "Email invalido"))
    return email


def _parse_iso_date(payload: dict, key: str, errors: Errors) -> date | None:
    raw = _text(payload, key)
    if not raw:
        errors.append(_error(key, f"Falta {key}"))
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError:
        errors.append(_error(key, f"Formato de fecha invalido para {key}"))
        return None


def _positive_id(payload: dict, key: str, errors: Errors, required: bool = True) -> int | None:
    value = payload.get(key)
    if value is None or value == "":
        if required:
            errors.append(_error(key, f"Falta {key}"))
        return None
    if isinstance(value, bool):
        errors.append(_error(key, f"{key} debe ser un entero positivo"))
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        errors.append(_error(key, f"{key} debe ser un entero positivo"))
        return None
    if number <= 0:
        errors.append(_error(key, f"{key} debe ser un entero positivo"))
        return None
    return number


def parse_money(value, field_name: str, errors: Errors) -> Decimal | None:
    """Importe positivo con exactamente dos decimales.

    Solo se aceptan ``str`` y ``Decimal``; los ``float`` se rechazan para
    no arrastrar errores de representacion binaria.
    """
    if isinstance(value, bool) or not isinstance(value, (str, Decimal)):
        errors.append(_error(field_name, f"Importe invalido en {field_name}"))
        return None
    try:
        amount = Decimal(value.strip() if isinstance(value, str) else value)
    except InvalidOperation:
        errors.append(_error(field_name, f"Importe invalido en {field_name}"))
        return None
    if not amount.is_finite() or amount.as_tuple().exponent != -2:
        errors.append(_error(field_name, f"{field_name} debe tener dos decimales"))
        return None
    if amount <= 0:
        errors.append(_error(field_name, f"{field_name} debe ser mayor que cero"))
        return None
    return amount


def parse_non_negative_money(value, field_name: str, errors: Errors) -> Decimal | None:
    if value is None or value == "":
        return Decimal("0.00")
    if isinstance(value, bool) or not isinstance(value, (str, Decimal, int)):
        errors.append(_error(field_name, f"Importe invalido en {field_name}"))
        return None
    try:
        amount = Decimal(value.strip() if isinstance(value, str) else value)
    except InvalidOperation:
        errors.append(_error(field_name, f"Importe invalido en {field_name}"))
        return None
    if not amount.is_finite() or amount < 0:
        errors.append(_error(field_name, f"Importe invalido en {field_name}"))
        return None
    return amount.quantize(Decimal("0.01"))


def validate_numero(value, field_name: str, errors: Errors) -> str:
    numero = value.strip() if isinstance(value, str) else ""
    if not numero:
        errors.append(_error(field_name, f"Falta {field_name}"))
    elif len(numero) > MAX_NUMERO_LENGTH:
        errors.append(_error(field_name, f"{field_name} supera {MAX_NUMERO_LENGTH} caracteres"))
    return numero


def validate_person_payload(payload: dict) -> dict:
    errors: Errors = []
    identity = validate_ci_pasaporte(payload.get("ci_pasaporte"))
    if not identity.valid:
        errors.append(_error("ci_pasaporte", IDENTITY_ERROR_MESSAGE))
    values = {
        "ci_pasaporte": identity.normalized,
        "nombres": _required_text(payload, "nombres", errors, 100),
        "apellidos": _required_text(payload, "apellidos", errors, 100),
        "num_telefono": _text(payload, "num_telefono"),
        "correo": _validate_email(_text(payload, "correo"), "correo", errors),
        "pais": _text(payload, "pais"),
        "provincia_estado": _text(payload, "provincia_estado"),
        "ciudad": _text(payload, "ciudad"),
        "profesion": _text(payload, "profesion"),
        "institucion": _text(payload, "institucion"),
    }
    raise_if_errors(errors)
    return values


def validate_contact_payload(payload: dict) -> dict:
    errors: Errors = []
    values: dict[str, str] = {}
    if "num_telefono" in payload:
        values["num_telefono"] = _text(payload, "num_telefono")
    if "correo" in payload:
        values["correo"] = _validate_email(_text(payload, "correo"), "correo", errors)
    if not values and not errors:
        errors.append(_error("payload", "No hay datos de contacto para actualizar"))
    raise_if_errors(errors)
    return values


def validate_curso_payload(payload: dict, today: date | None = None) -> dict:
    errors: Errors = []
    today = today or date.today()
    values = {
        "nombre_corto_curso": _required_text(payload, "nombre_corto_curso", errors, 30),
        "nombre_curso": _required_text(payload, "nombre_curso", errors, 150),
        "modalidad_curso": _text(payload, "modalidad_curso"),
        "descripcion_curso": _text(payload, "descripcion_curso"),
        "valor_curso": parse_money(payload.get("valor_curso"), "valor_curso", errors),
        "enlace_pago": _text(payload, "enlace_pago"),
        "fecha_inicio_curso": _parse_iso_date(payload, "fecha_inicio_curso", errors),
        "fecha_fin_curso": _parse_iso_date(payload, "fecha_fin_curso", errors),
    }
    inicio = values["fecha_inicio_curso"]
    fin = values["fecha_fin_curso"]
    if inicio and inicio < today:
        errors.append(_error("fecha_inicio_curso", "La fecha de inicio no puede ser anterior a hoy"))
    if inicio and fin and fin < inicio:
        errors.append(_error("fecha_fin_curso", "La fecha de fin no puede ser anterior a la de inicio"))
    raise_if_errors(errors)
    return values


def validate_facturacion_payload(payload: dict) -> dict:
    errors: Errors = []
    values = {
        "razon_social": _required_text(payload, "razon_social", errors, 150),
        "identificacion_tributaria": _required_text(payload, "identificacion_tributaria", errors, 20),
        "telefono": _required_text(payload, "telefono", errors, 40),
        "correo_factura": _validate_email(_text(payload, "correo_factura"), "correo_factura", errors),
        "direccion": _required_text(payload, "direccion", errors, 255),
    }
    raise_if_errors(errors)
    return values


def validate_descuento_payload(payload: dict) -> dict:
    errors: Errors = []
    raw_tipo = _text(payload, "tipo_descuento").upper()
    tipo = None
    if not raw_tipo:
        errors.append(_error("tipo_descuento", "Falta tipo_descuento"))
    else:
        try:
            tipo = TipoDescuento(raw_tipo)
        except ValueError:
            errors.append(_error("tipo_descuento", "Tipo de descuento invalido"))
    porcentaje = parse_non_negative_money(payload.get("porcentaje_descuento"), "porcentaje_descuento", errors)
    if porcentaje is not None and porcentaje > 100:
        errors.append(_error("porcentaje_descuento", "El porcentaje no puede superar 100"))
    values = {
        "tipo_descuento": tipo,
        "valor_descuento": parse_non_negative_money(payload.get("valor_descuento"), "valor_descuento", errors),
        "porcentaje_descuento": porcentaje,
        "descripcion_descuento": _text(payload, "descripcion_descuento"),
    }
    raise_if_errors(errors)
    return values


def validate_inscripcion_payload(payload: dict) -> dict:
    errors: Errors = []
    values = {
        "curso_id": _positive_id(payload, "curso_id", errors),
        "persona_id": _positive_id(payload, "persona_id", errors),
        "facturacion_id": _positive_id(payload, "facturacion_id", errors),
        "comprobante_id": _positive_id(payload, "comprobante_id", errors),
    }
    raise_if_errors(errors)
    return values


def validate_inscripcion_update_payload(payload: dict) -> dict:
    """Solo devuelve las claves presentes; la ausencia significa "sin cambios"."""
    errors: Errors = []
    values: dict = {}
    if "descuento_id" in payload:
        if payload["descuento_id"] is None:
            values["descuento_id"] = None
        else:
            values["descuento_id"] = _positive_id(payload, "descuento_id", errors)
    if "matricula" in payload:
        if not isinstance(payload["matricula"], bool):
            errors.append(_error("matricula", "matricula debe ser booleano"))
        else:
            values["matricula"] = payload["matricula"]
    raise_if_errors(errors)
    return values


def validate_factura_payload(payload: dict) -> dict:
    errors: Errors = []
    values = {
        "inscripcion_id": _positive_id(payload, "inscripcion_id", errors),
        "facturacion_id": _positive_id(payload, "facturacion_id", errors),
        "valor_pagado": payload.get("valor_pagado"),
        "numero_ingreso": payload.get("numero_ingreso"),
        "numero_factura": payload.get("numero_factura"),
    }
    raise_if_errors(errors)
    return values


def validate_invoice_fields(valor_pagado, numero_ingreso, numero_factura) -> tuple[Decimal, str, str]:
    errors: Errors = []
    amount = parse_money(valor_pagado, "valor_pagado", errors)
    ingreso = validate_numero(numero_ingreso, "numero_ingreso", errors)
    factura = validate_numero(numero_factura, "numero_factura", errors)
    if factura and len(factura) <= MAX_NUMERO_LENGTH and not _NUMERO_FACTURA_RE.fullmatch(factura):
        errors.append(
            _error("numero_factura", "numero_factura solo admite mayusculas, digitos y guiones")
        )
    raise_if_errors(errors, "Datos de factura invalidos")
    return amount, ingreso, factura


def _optional_bool(payload: dict, key: str, values: dict, errors: Errors) -> None:
    if key not in payload:
        return
    if not isinstance(payload[key], bool):
        errors.append(_error(key, f"{key} debe ser booleano"))
    else:
        values[key] = payload[key]


def validate_curso_moodle_payload(payload: dict, partial: bool = False) -> dict:
    """Con ``partial`` solo se validan y devuelven las claves presentes."""
    errors: Errors = []
    values: dict = {}
    if not partial or "moodle_course_id" in payload:
        values["moodle_course_id"] = _positive_id(payload, "moodle_course_id", errors)
    if not partial or "shortname" in payload:
        shortname = _text(payload, "shortname")
        if len(shortname) > 100:
            errors.append(_error("shortname", "shortname supera 100 caracteres"))
        values["shortname"] = shortname
    _optional_bool(payload, "activo", values, errors)
    if partial and not values and not errors:
        errors.append(_error("payload", "No hay datos para actualizar"))
    raise_if_errors(errors)
    return values


def validate_grupo_telegram_payload(payload: dict, partial: bool = False) -> dict:
    errors: Errors = []
    values: dict = {}
    if not partial or "telegram_group_id" in payload:
        values["telegram_group_id"] = _required_text(payload, "telegram_group_id", errors, 50)
    if not partial or "nombre_grupo" in payload:
        values["nombre_grupo"] = _required_text(payload, "nombre_grupo", errors, 150)
    if not partial or "enlace_invitacion" in payload:
        enlace = _required_text(payload, "enlace_invitacion", errors, 255)
        if enlace and not enlace.startswith("https://"):
            errors.append(_error("enlace_invitacion", "El enlace de invitacion debe usar https"))
        values["enlace_invitacion"] = enlace
    _optional_bool(payload, "activo", values, errors)
    if partial and not values and not errors:
        errors.append(_error("payload", "No hay datos para actualizar"))
    raise_if_errors(errors)
    return values
