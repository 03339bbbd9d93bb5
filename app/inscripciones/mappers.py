from __future__ import annotations

from app.core.identity import provincia_de_cedula
from app.core.models import (
    Comprobante,
    Curso,
    CursoMoodle,
    DatosFacturacion,
    Descuento,
    Factura,
    GrupoTelegram,
    Inscripcion,
    InscripcionMoodle,
    Person,
)
from app.core.utils import iso, money
from app.inscripciones.repository import InscriptionRepository


def person_to_dict(person: Person) -> dict:
    provincia = provincia_de_cedula(person.ci_pasaporte)
    return {
        "id": person.id,
        "ci_pasaporte": person.ci_pasaporte,
        "nombres": person.nombres,
        "apellidos": person.apellidos,
        "num_telefono": person.num_telefono,
        "correo": person.correo,
        "pais": person.pais,
        "provincia_estado": person.provincia_estado,
        "ciudad": person.ciudad,
        "profesion": person.profesion,
        "institucion": person.institucion,
        "provincia_cedula": {"codigo": provincia[0], "nombre": provincia[1]} if provincia else None,
    }


def curso_to_dict(curso: Curso) -> dict:
    return {
        "id": curso.id,
        "nombre_corto_curso": curso.nombre_corto_curso,
        "nombre_curso": curso.nombre_curso,
        "modalidad_curso": curso.modalidad_curso,
        "descripcion_curso": curso.descripcion_curso,
        "valor_curso": money(curso.valor_curso),
        "enlace_pago": curso.enlace_pago,
        "fecha_inicio_curso": iso(curso.fecha_inicio_curso),
        "fecha_fin_curso": iso(curso.fecha_fin_curso),
    }


def facturacion_to_dict(datos: DatosFacturacion) -> dict:
    return {
        "id": datos.id,
        "razon_social": datos.razon_social,
        "identificacion_tributaria": datos.identificacion_tributaria,
        "telefono": datos.telefono,
        "correo_factura": datos.correo_factura,
        "direccion": datos.direccion,
    }


def comprobante_to_dict(comprobante: Comprobante) -> dict:
    # La ruta en disco no se expone
    return {
        "id": comprobante.id,
        "tipo_archivo": comprobante.tipo_archivo,
        "nombre_archivo": comprobante.nombre_archivo,
        "fecha_subida": iso(comprobante.fecha_subida),
    }


def descuento_to_dict(descuento: Descuento) -> dict:
    return {
        "id": descuento.id,
        "tipo_descuento": descuento.tipo_descuento.value,
        "valor_descuento": money(descuento.valor_descuento),
        "porcentaje_descuento": money(descuento.porcentaje_descuento),
        "descripcion_descuento": descuento.descripcion_descuento,
    }


def factura_to_dict(factura: Factura) -> dict:
    return {
        "id": factura.id,
        "inscripcion_id": factura.inscripcion_id,
        "facturacion_id": factura.facturacion_id,
        "valor_pagado": money(factura.valor_pagado),
        "numero_ingreso": factura.numero_ingreso,
        "numero_factura": factura.numero_factura,
        "verificacion_pago": factura.verificacion_pago,
    }


def curso_moodle_to_dict(mapping: CursoMoodle) -> dict:
    return {
        "curso_id": mapping.curso_id,
        "moodle_course_id": mapping.moodle_course_id,
        "shortname": mapping.shortname,
        "activo": mapping.activo,
    }


def grupo_telegram_to_dict(grupo: GrupoTelegram) -> dict:
    return {
        "curso_id": grupo.curso_id,
        "telegram_group_id": grupo.telegram_group_id,
        "nombre_grupo": grupo.nombre_grupo,
        "enlace_invitacion": grupo.enlace_invitacion,
        "activo": grupo.activo,
    }


def moodle_to_dict(record: InscripcionMoodle | None) -> dict | None:
    if record is None:
        return None
    return {
        "moodle_user_id": record.moodle_user_id,
        "moodle_username": record.moodle_username,
        "estado_matricula": record.estado_matricula.value,
        "notas": record.notas,
        "updated_at": iso(record.updated_at),
    }


def inscripcion_to_dict(inscripcion: Inscripcion, repository: InscriptionRepository, final_amount=None) -> dict:
    """Agregado hidratado: las relaciones se resuelven por id."""
    curso = repository.get(Curso, inscripcion.curso_id)
    persona = repository.get(Person, inscripcion.persona_id)
    datos = repository.get(DatosFacturacion, inscripcion.facturacion_id)
    comprobante = repository.get(Comprobante, inscripcion.comprobante_id)
    descuento = repository.get(Descuento, inscripcion.descuento_id)
    factura = repository.invoice_for_inscription(inscripcion.id)
    return {
        "id": inscripcion.id,
        "matricula": inscripcion.matricula,
        "estado": "MATRICULADO" if inscripcion.matricula else "PENDIENTE",
        "fecha_inscripcion": iso(inscripcion.fecha_inscripcion),
        "curso": curso_to_dict(curso) if curso else None,
        "persona": person_to_dict(persona) if persona else None,
        "datos_facturacion": facturacion_to_dict(datos) if datos else None,
        "comprobante": comprobante_to_dict(comprobante) if comprobante else None,
        "descuento": descuento_to_dict(descuento) if descuento else None,
        "factura": factura_to_dict(factura) if factura else None,
        "moodle": moodle_to_dict(repository.moodle_record(inscripcion.id)),
        "valor_final": money(final_amount),
    }
