from __future__ import annotations

import logging

from app.core.errors import ConflictError, InternalError, NotFoundError
from app.core.extensions import db
from app.core.models import Comprobante, Curso, CursoMoodle, DatosFacturacion, Descuento, GrupoTelegram, Person
from app.inscripciones.repository import InscriptionRepository
from app.inscripciones.storage import LocalReceiptStorage
from app.inscripciones.validators import (
    validate_contact_payload,
    validate_curso_moodle_payload,
    validate_curso_payload,
    validate_descuento_payload,
    validate_facturacion_payload,
    validate_grupo_telegram_payload,
    validate_person_payload,
)

logger = logging.getLogger(__name__)


def _repository() -> InscriptionRepository:
    return InscriptionRepository(db.session)


def create_person(payload: dict, repository: InscriptionRepository | None = None) -> Person:
    repo = repository or _repository()
    values = validate_person_payload(payload)
    if repo.person_by_ci(values["ci_pasaporte"]):
        raise ConflictError("Ya existe una persona con esa cedula o pasaporte")
    person = Person(**values)
    repo.add(person)
    repo.commit(conflict_message="Ya existe una persona con esa cedula o pasaporte")
    logger.info("Persona %s created", person.id)
    return person


def update_person_contact(person_id: int, payload: dict, repository: InscriptionRepository | None = None) -> Person:
    repo = repository or _repository()
    person = repo.require(Person, person_id, "Persona")
    values = validate_contact_payload(payload)
    for key, value in values.items():
        setattr(person, key, value)
    repo.commit()
    return person


def create_curso(payload: dict, repository: InscriptionRepository | None = None) -> Curso:
    repo = repository or _repository()
    curso = Curso(**validate_curso_payload(payload))
    repo.add(curso)
    repo.commit(conflict_message="Ya existe un curso con ese nombre corto")
    logger.info("Curso %s created", curso.id)
    return curso


def create_datos_facturacion(payload: dict, repository: InscriptionRepository | None = None) -> DatosFacturacion:
    repo = repository or _repository()
    datos = DatosFacturacion(**validate_facturacion_payload(payload))
    repo.add(datos)
    repo.commit()
    return datos


def create_descuento(payload: dict, repository: InscriptionRepository | None = None) -> Descuento:
    repo = repository or _repository()
    descuento = Descuento(**validate_descuento_payload(payload))
    repo.add(descuento)
    repo.commit()
    return descuento


def delete_descuento(descuento_id: int, repository: InscriptionRepository | None = None) -> None:
    repo = repository or _repository()
    descuento = repo.require(Descuento, descuento_id, "Descuento")
    if repo.inscriptions_using_descuento(descuento.id):
        raise ConflictError("El descuento esta aplicado a inscripciones y no puede eliminarse")
    repo.delete(descuento)
    repo.commit()


def create_comprobante(
    upload,
    storage: LocalReceiptStorage,
    repository: InscriptionRepository | None = None,
) -> Comprobante:
    repo = repository or _repository()
    stored = storage.store(upload)
    comprobante = Comprobante(
        ruta_comprobante=stored.path,
        tipo_archivo=stored.mime_type,
        nombre_archivo=stored.filename,
    )
    repo.add(comprobante)
    try:
        repo.commit()
    except InternalError:
        logger.error("Receipt %s stored but not registered, removing file", stored.path)
        storage.delete(stored.path)
        raise
    return comprobante


def delete_comprobante(
    comprobante_id: int,
    storage: LocalReceiptStorage,
    repository: InscriptionRepository | None = None,
) -> None:
    repo = repository or _repository()
    comprobante = repo.require(Comprobante, comprobante_id, "Comprobante")
    if repo.inscription_by_comprobante(comprobante.id):
        raise ConflictError("El comprobante esta asociado a una inscripcion y no puede eliminarse")
    path = comprobante.ruta_comprobante
    repo.delete(comprobante)
    repo.commit()
    # El registro ya no existe; un fallo al borrar el fichero solo se registra
    storage.delete(path)


def create_curso_moodle(curso_id: int, payload: dict, repository: InscriptionRepository | None = None) -> CursoMoodle:
    repo = repository or _repository()
    repo.require(Curso, curso_id, "Curso")
    values = validate_curso_moodle_payload(payload)
    if repo.integration_for_curso(CursoMoodle, curso_id):
        raise ConflictError("El curso ya tiene una integracion con Moodle")
    if repo.moodle_course_in_use(values["moodle_course_id"]):
        raise ConflictError("El curso de Moodle ya esta asociado a otro curso")
    mapping = CursoMoodle(curso_id=curso_id, **values)
    repo.add(mapping)
    repo.commit(conflict_message="El curso ya tiene una integracion con Moodle")
    logger.info("Moodle mapping created for curso %s -> %s", curso_id, mapping.moodle_course_id)
    return mapping


def update_curso_moodle(curso_id: int, payload: dict, repository: InscriptionRepository | None = None) -> CursoMoodle:
    repo = repository or _repository()
    mapping = repo.integration_for_curso(CursoMoodle, curso_id)
    if mapping is None:
        raise NotFoundError("Integracion Moodle")
    values = validate_curso_moodle_payload(payload, partial=True)
    moodle_course_id = values.get("moodle_course_id")
    if moodle_course_id is not None and repo.moodle_course_in_use(moodle_course_id, exclude_curso_id=curso_id):
        raise ConflictError("El curso de Moodle ya esta asociado a otro curso")
    for key, value in values.items():
        setattr(mapping, key, value)
    repo.commit()
    logger.info("Moodle mapping updated for curso %s: %s", curso_id, sorted(values))
    return mapping


def list_cursos_moodle(incluir_inactivos: bool = False, repository: InscriptionRepository | None = None) -> list[CursoMoodle]:
    return (repository or _repository()).list_integrations(CursoMoodle, incluir_inactivos)


def create_grupo_telegram(curso_id: int, payload: dict, repository: InscriptionRepository | None = None) -> GrupoTelegram:
    repo = repository or _repository()
    repo.require(Curso, curso_id, "Curso")
    values = validate_grupo_telegram_payload(payload)
    if repo.integration_for_curso(GrupoTelegram, curso_id):
        raise ConflictError("El curso ya tiene un grupo de Telegram")
    if repo.telegram_group_in_use(values["telegram_group_id"]):
        raise ConflictError("El grupo de Telegram ya esta asociado a otro curso")
    grupo = GrupoTelegram(curso_id=curso_id, **values)
    repo.add(grupo)
    repo.commit(conflict_message="El curso ya tiene un grupo de Telegram")
    logger.info("Telegram group created for curso %s", curso_id)
    return grupo


def update_grupo_telegram(curso_id: int, payload: dict, repository: InscriptionRepository | None = None) -> GrupoTelegram:
    repo = repository or _repository()
    grupo = repo.integration_for_curso(GrupoTelegram, curso_id)
    if grupo is None:
        raise NotFoundError("Grupo de Telegram")
    values = validate_grupo_telegram_payload(payload, partial=True)
    telegram_group_id = values.get("telegram_group_id")
    if telegram_group_id and repo.telegram_group_in_use(telegram_group_id, exclude_curso_id=curso_id):
        raise ConflictError("El grupo de Telegram ya esta asociado a otro curso")
    for key, value in values.items():
        setattr(grupo, key, value)
    repo.commit()
    return grupo


def list_grupos_telegram(incluir_inactivos: bool = False, repository: InscriptionRepository | None = None) -> list[GrupoTelegram]:
    return (repository or _repository()).list_integrations(GrupoTelegram, incluir_inactivos)
