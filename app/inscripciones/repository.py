from __future__ import annotations

import logging

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.core.errors import ConflictError, InternalError, NotFoundError
from app.core.models import (
    CursoMoodle,
    EstadoMatriculaMoodle,
    Factura,
    GrupoTelegram,
    Inscripcion,
    InscripcionMoodle,
    Person,
    utcnow,
)

logger = logging.getLogger(__name__)


class InscriptionRepository:
    """Acceso a datos de inscripciones sobre la sesion de Flask-SQLAlchemy.

    Traduce los errores de SQLAlchemy a errores de dominio: una violacion
    de unicidad es ``ConflictError`` y cualquier otro fallo ``InternalError``.
    """

    def __init__(self, session) -> None:
        self.session = session

    def get(self, model, entity_id: int | None):
        if entity_id is None:
            return None
        return self.session.get(model, entity_id)

    def require(self, model, entity_id: int | None, label: str):
        entity = self.get(model, entity_id)
        if entity is None:
            raise NotFoundError(label)
        return entity

    def add(self, entity) -> None:
        self.session.add(entity)

    def delete(self, entity) -> None:
        self.session.delete(entity)

    def commit(self, conflict_message: str = "El registro ya existe") -> None:
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            logger.info("Integrity conflict on commit: %s", exc.orig)
            raise ConflictError(conflict_message) from exc
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception("Database error on commit")
            raise InternalError() from exc

    def rollback(self) -> None:
        self.session.rollback()

    def refresh(self, entity) -> None:
        self.session.refresh(entity)

    # Consultas

    def person_by_ci(self, ci_pasaporte: str) -> Person | None:
        return self.session.scalar(select(Person).where(Person.ci_pasaporte == ci_pasaporte))

    def inscription_for(self, persona_id: int, curso_id: int) -> Inscripcion | None:
        return self.session.scalar(
            select(Inscripcion).where(Inscripcion.persona_id == persona_id, Inscripcion.curso_id == curso_id)
        )

    def inscription_by_comprobante(self, comprobante_id: int) -> Inscripcion | None:
        return self.session.scalar(select(Inscripcion).where(Inscripcion.comprobante_id == comprobante_id))

    def inscriptions_using_descuento(self, descuento_id: int) -> int:
        return self.session.scalar(
            select(func.count(Inscripcion.id)).where(Inscripcion.descuento_id == descuento_id)
        )

    def list_inscriptions(self, curso_id: int | None = None, matricula: bool | None = None) -> list[Inscripcion]:
        query = select(Inscripcion)
        if curso_id is not None:
            query = query.where(Inscripcion.curso_id == curso_id)
        if matricula is not None:
            query = query.where(Inscripcion.matricula.is_(matricula))
        return list(self.session.scalars(query.order_by(Inscripcion.fecha_inscripcion.asc(), Inscripcion.id.asc())))

    def invoice_for_inscription(self, inscripcion_id: int) -> Factura | None:
        return self.session.scalar(select(Factura).where(Factura.inscripcion_id == inscripcion_id))

    def invoice_by_numero_ingreso(self, numero_ingreso: str) -> Factura | None:
        return self.session.scalar(select(Factura).where(Factura.numero_ingreso == numero_ingreso))

    def invoice_by_numero_factura(self, numero_factura: str) -> Factura | None:
        return self.session.scalar(select(Factura).where(Factura.numero_factura == numero_factura))

    def course_mapping(self, curso_id: int) -> CursoMoodle | None:
        return self.session.scalar(
            select(CursoMoodle).where(CursoMoodle.curso_id == curso_id, CursoMoodle.activo.is_(True))
        )

    def telegram_group(self, curso_id: int) -> GrupoTelegram | None:
        return self.session.scalar(
            select(GrupoTelegram).where(GrupoTelegram.curso_id == curso_id, GrupoTelegram.activo.is_(True))
        )

    def integration_for_curso(self, model, curso_id: int):
        """Fila de integracion del curso, activa o no."""
        return self.session.scalar(select(model).where(model.curso_id == curso_id))

    def moodle_course_in_use(self, moodle_course_id: int, exclude_curso_id: int | None = None) -> bool:
        query = select(CursoMoodle.id).where(CursoMoodle.moodle_course_id == moodle_course_id)
        if exclude_curso_id is not None:
            query = query.where(CursoMoodle.curso_id != exclude_curso_id)
        return self.session.scalar(query) is not None

    def telegram_group_in_use(self, telegram_group_id: str, exclude_curso_id: int | None = None) -> bool:
        query = select(GrupoTelegram.id).where(GrupoTelegram.telegram_group_id == telegram_group_id)
        if exclude_curso_id is not None:
            query = query.where(GrupoTelegram.curso_id != exclude_curso_id)
        return self.session.scalar(query) is not None

    def list_integrations(self, model, incluir_inactivos: bool = False) -> list:
        query = select(model)
        if not incluir_inactivos:
            query = query.where(model.activo.is_(True))
        return list(self.session.scalars(query.order_by(model.curso_id.asc())))

    def moodle_record(self, inscripcion_id: int) -> InscripcionMoodle | None:
        return self.session.scalar(
            select(InscripcionMoodle).where(InscripcionMoodle.inscripcion_id == inscripcion_id)
        )

    # Transiciones condicionales (compare-and-swap)

    def mark_payment_verified(self, factura_id: int) -> bool:
        result = self.session.execute(
            update(Factura)
            .where(Factura.id == factura_id, Factura.verificacion_pago.is_(False))
            .values(verificacion_pago=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def mark_matriculated(self, inscripcion_id: int) -> bool:
        result = self.session.execute(
            update(Inscripcion)
            .where(Inscripcion.id == inscripcion_id, Inscripcion.matricula.is_(False))
            .values(matricula=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def save_moodle_result(
        self,
        inscripcion_id: int,
        estado: EstadoMatriculaMoodle,
        moodle_user_id: int | None = None,
        moodle_username: str = "",
        notas: str = "",
    ) -> InscripcionMoodle:
        record = self.moodle_record(inscripcion_id)
        if record is None:
            record = InscripcionMoodle(inscripcion_id=inscripcion_id)
            self.session.add(record)
        record.estado_matricula = estado
        if moodle_user_id is not None:
            record.moodle_user_id = moodle_user_id
        if moodle_username:
            record.moodle_username = moodle_username
        record.notas = notas[:500]
        record.updated_at = utcnow()
        self.commit()
        return record
