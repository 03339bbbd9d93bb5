from __future__ import annotations

from decimal import Decimal
import logging

from flask import current_app

from app.core.errors import ConflictError
from app.core.extensions import db
from app.core.models import Comprobante, Curso, DatosFacturacion, Descuento, Factura, Inscripcion, Person
from app.inscripciones.discounts import compute_final_amount
from app.inscripciones.notifier import EnrollmentNotifier
from app.inscripciones.repository import InscriptionRepository
from app.inscripciones.validators import validate_invoice_fields

logger = logging.getLogger(__name__)


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


# Marca de "campo no enviado" en actualizaciones parciales
UNSET = _Unset()


class InscriptionOrchestrator:
    """Maquina de estados inscripcion/factura.

    Una inscripcion nace PENDIENTE (``matricula=False``) y pasa a
    MATRICULADO una sola vez, cuando su factura esta verificada. El
    notificador se invoca despues del commit y solo por la llamada que
    gano la transicion.
    """

    def __init__(self, repository: InscriptionRepository, notifier: EnrollmentNotifier, calculator=compute_final_amount):
        self.repository = repository
        self.notifier = notifier
        self.calculator = calculator

    # Inscripciones

    def create_inscription(self, curso_id: int, persona_id: int, facturacion_id: int, comprobante_id: int) -> Inscripcion:
        repo = self.repository
        repo.require(Curso, curso_id, "Curso")
        repo.require(Person, persona_id, "Persona")
        repo.require(DatosFacturacion, facturacion_id, "Datos de facturacion")
        repo.require(Comprobante, comprobante_id, "Comprobante")

        if repo.inscription_by_comprobante(comprobante_id):
            raise ConflictError("El comprobante ya esta asociado a otra inscripcion")
        if repo.inscription_for(persona_id, curso_id):
            raise ConflictError("La persona ya esta inscrita en este curso")

        inscripcion = Inscripcion(
            curso_id=curso_id,
            persona_id=persona_id,
            facturacion_id=facturacion_id,
            comprobante_id=comprobante_id,
            matricula=False,
        )
        repo.add(inscripcion)
        repo.commit(conflict_message="La persona ya esta inscrita en este curso o el comprobante ya esta en uso")
        logger.info("Inscripcion %s created (persona=%s, curso=%s)", inscripcion.id, persona_id, curso_id)
        return inscripcion

    def get_inscription(self, inscripcion_id: int) -> Inscripcion:
        return self.repository.require(Inscripcion, inscripcion_id, "Inscripcion")

    def list_inscriptions(self, curso_id: int | None = None, matricula: bool | None = None) -> list[Inscripcion]:
        return self.repository.list_inscriptions(curso_id=curso_id, matricula=matricula)

    def final_amount(self, inscripcion: Inscripcion) -> Decimal:
        curso = self.repository.require(Curso, inscripcion.curso_id, "Curso")
        descuento = self.repository.get(Descuento, inscripcion.descuento_id)
        return self.calculator(curso.valor_curso, descuento)

    def update_inscription(self, inscripcion_id: int, descuento_id=UNSET, matricula=UNSET) -> Inscripcion:
        repo = self.repository
        inscripcion = repo.require(Inscripcion, inscripcion_id, "Inscripcion")
        if descuento_id is not UNSET and descuento_id is not None:
            repo.require(Descuento, descuento_id, "Descuento")

        wants_matricula = False
        if matricula is not UNSET:
            if not matricula and inscripcion.matricula:
                raise ConflictError("Una inscripcion matriculada no puede volver a pendiente")
            if matricula and not inscripcion.matricula:
                factura = repo.invoice_for_inscription(inscripcion.id)
                if factura is None or not factura.verificacion_pago:
                    raise ConflictError("No se puede matricular sin un pago verificado")
                wants_matricula = True

        if descuento_id is not UNSET:
            inscripcion.descuento_id = descuento_id
        won = repo.mark_matriculated(inscripcion.id) if wants_matricula else False
        repo.commit()

        if won:
            logger.info("Inscripcion %s matriculated", inscripcion.id)
            self.notifier.on_matriculated(inscripcion.id)
        return inscripcion

    # Facturas

    def create_invoice(
        self,
        inscripcion_id: int,
        facturacion_id: int,
        valor_pagado,
        numero_ingreso,
        numero_factura,
    ) -> Factura:
        repo = self.repository
        amount, ingreso, numero = validate_invoice_fields(valor_pagado, numero_ingreso, numero_factura)
        repo.require(Inscripcion, inscripcion_id, "Inscripcion")
        repo.require(DatosFacturacion, facturacion_id, "Datos de facturacion")

        if repo.invoice_for_inscription(inscripcion_id):
            raise ConflictError("La inscripcion ya tiene una factura")
        if repo.invoice_by_numero_ingreso(ingreso):
            raise ConflictError("Ya existe una factura con ese numero_ingreso")
        if repo.invoice_by_numero_factura(numero):
            raise ConflictError("Ya existe una factura con ese numero_factura")

        factura = Factura(
            inscripcion_id=inscripcion_id,
            facturacion_id=facturacion_id,
            valor_pagado=amount,
            numero_ingreso=ingreso,
            numero_factura=numero,
            verificacion_pago=False,
        )
        repo.add(factura)
        repo.commit(conflict_message="El numero de ingreso o de factura ya existe")
        logger.info("Factura %s created for inscripcion %s", factura.id, inscripcion_id)
        return factura

    def verify_payment(self, factura_id: int) -> Factura:
        repo = self.repository
        factura = repo.require(Factura, factura_id, "Factura")
        if factura.verificacion_pago:
            return factura

        if not repo.mark_payment_verified(factura.id):
            # Otra peticion la verifico entre la lectura y el update
            repo.rollback()
            repo.refresh(factura)
            return factura
        won = repo.mark_matriculated(factura.inscripcion_id)
        repo.commit()
        logger.info("Payment verified for factura %s", factura.id)

        if won:
            logger.info("Inscripcion %s matriculated", factura.inscripcion_id)
            self.notifier.on_matriculated(factura.inscripcion_id)
        return factura

    def delete_invoice(self, factura_id: int) -> None:
        repo = self.repository
        factura = repo.require(Factura, factura_id, "Factura")
        if factura.verificacion_pago:
            raise ConflictError("No se puede eliminar una factura con pago verificado")
        repo.delete(factura)
        repo.commit()
        logger.info("Factura %s deleted", factura_id)


def build_notifier(repository: InscriptionRepository | None = None) -> EnrollmentNotifier:
    clients = current_app.extensions["inscripciones"]
    return EnrollmentNotifier(
        repository or InscriptionRepository(db.session),
        clients["platform_client"],
        clients["invite_sender"],
    )


def build_orchestrator() -> InscriptionOrchestrator:
    repository = InscriptionRepository(db.session)
    return InscriptionOrchestrator(repository, build_notifier(repository))
