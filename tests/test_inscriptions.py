from __future__ import annotations

from decimal import Decimal
from unittest.mock import Mock

import pytest

from app.core.errors import ConflictError, IntegrationError, NotFoundError, ValidationError
from app.core.extensions import db
from app.core.models import Descuento, Factura, Inscripcion, Person
from app.inscripciones.catalog import create_person
from app.inscripciones.notifier import EnrollmentNotifier
from app.inscripciones.repository import InscriptionRepository
from app.inscripciones.services import InscriptionOrchestrator


@pytest.fixture
def notifier():
    return Mock(spec=EnrollmentNotifier)


@pytest.fixture
def orchestrator(app, notifier):
    return InscriptionOrchestrator(InscriptionRepository(db.session), notifier)


def _invoice(orchestrator, inscripcion, facturacion_id, n: int = 1) -> Factura:
    return orchestrator.create_invoice(inscripcion.id, facturacion_id, "100.00", f"ING-{n}", f"FAC-{n}")


def test_scenario_a_verified_payment_matriculates_once(orchestrator, notifier, make_refs):
    refs = make_refs("0402084040")
    inscripcion = orchestrator.create_inscription(**refs)
    assert inscripcion.matricula is False

    factura = _invoice(orchestrator, inscripcion, refs["facturacion_id"])
    assert factura.verificacion_pago is False

    verified = orchestrator.verify_payment(factura.id)
    assert verified.verificacion_pago is True
    assert db.session.get(Inscripcion, inscripcion.id).matricula is True
    notifier.on_matriculated.assert_called_once_with(inscripcion.id)


def test_scenario_b_bad_checksum_rejects_person(app):
    with pytest.raises(ValidationError) as excinfo:
        create_person(
            {
                "ci_pasaporte": "1234567890",
                "nombres": "Luis",
                "apellidos": "Mora",
                "correo": "luis@example.com",
            }
        )
    assert excinfo.value.errors[0]["field"] == "ci_pasaporte"
    assert Person.query.count() == 0
    assert Inscripcion.query.count() == 0


def test_scenario_c_duplicate_person_course(orchestrator, make_refs):
    orchestrator.create_inscription(**make_refs("0402084040"))
    with pytest.raises(ConflictError):
        orchestrator.create_inscription(**make_refs("0402084040"))
    assert Inscripcion.query.count() == 1


def test_scenario_d_verify_payment_is_idempotent(orchestrator, notifier, make_refs):
    refs = make_refs()
    inscripcion = orchestrator.create_inscription(**refs)
    factura = _invoice(orchestrator, inscripcion, refs["facturacion_id"])

    orchestrator.verify_payment(factura.id)
    again = orchestrator.verify_payment(factura.id)

    assert again.id == factura.id
    assert again.verificacion_pago is True
    assert notifier.on_matriculated.call_count == 1


def test_receipt_can_only_back_one_inscription(orchestrator, make_refs):
    first = make_refs("0402084040")
    orchestrator.create_inscription(**first)
    second = make_refs("1710034065")
    second["comprobante_id"] = first["comprobante_id"]
    with pytest.raises(ConflictError):
        orchestrator.create_inscription(**second)


def test_create_inscription_names_missing_entity(orchestrator, make_refs):
    refs = make_refs()
    with pytest.raises(NotFoundError) as excinfo:
        orchestrator.create_inscription(**{**refs, "curso_id": 9999})
    assert excinfo.value.resource == "Curso"

    with pytest.raises(NotFoundError) as excinfo:
        orchestrator.create_inscription(**{**refs, "comprobante_id": 9999})
    assert excinfo.value.resource == "Comprobante"


def test_same_person_can_join_another_course(orchestrator, make_refs):
    orchestrator.create_inscription(**make_refs("0402084040", "PY-BASICO"))
    orchestrator.create_inscription(**make_refs("0402084040", "DATA-01"))
    assert Inscripcion.query.count() == 2


def test_partial_update_only_touches_given_fields(orchestrator, make_refs):
    inscripcion = orchestrator.create_inscription(**make_refs())
    descuento = Descuento.query.first()

    updated = orchestrator.update_inscription(inscripcion.id, descuento_id=descuento.id)
    assert updated.descuento_id == descuento.id
    assert updated.matricula is False
    assert orchestrator.final_amount(updated) == Decimal("80.00")

    updated = orchestrator.update_inscription(inscripcion.id)
    assert updated.descuento_id == descuento.id

    updated = orchestrator.update_inscription(inscripcion.id, descuento_id=None)
    assert updated.descuento_id is None
    assert orchestrator.final_amount(updated) == Decimal("100.00")


def test_update_with_missing_discount_is_not_found(orchestrator, make_refs):
    inscripcion = orchestrator.create_inscription(**make_refs())
    with pytest.raises(NotFoundError):
        orchestrator.update_inscription(inscripcion.id, descuento_id=9999)
    with pytest.raises(NotFoundError):
        orchestrator.update_inscription(9999, matricula=True)


def test_matricula_requires_verified_payment(orchestrator, notifier, make_refs):
    refs = make_refs()
    inscripcion = orchestrator.create_inscription(**refs)
    with pytest.raises(ConflictError):
        orchestrator.update_inscription(inscripcion.id, matricula=True)

    _invoice(orchestrator, inscripcion, refs["facturacion_id"])
    with pytest.raises(ConflictError):
        orchestrator.update_inscription(inscripcion.id, matricula=True)
    assert db.session.get(Inscripcion, inscripcion.id).matricula is False
    notifier.on_matriculated.assert_not_called()


def test_manual_matricula_after_verification_notifies_once(orchestrator, notifier, make_refs):
    refs = make_refs()
    inscripcion = orchestrator.create_inscription(**refs)
    factura = _invoice(orchestrator, inscripcion, refs["facturacion_id"])
    # Pago verificado sin pasar por verify_payment
    orchestrator.repository.mark_payment_verified(factura.id)
    db.session.commit()

    orchestrator.update_inscription(inscripcion.id, matricula=True)
    orchestrator.update_inscription(inscripcion.id, matricula=True)

    assert db.session.get(Inscripcion, inscripcion.id).matricula is True
    notifier.on_matriculated.assert_called_once_with(inscripcion.id)


def test_matricula_cannot_be_reverted(orchestrator, make_refs):
    refs = make_refs()
    inscripcion = orchestrator.create_inscription(**refs)
    factura = _invoice(orchestrator, inscripcion, refs["facturacion_id"])
    orchestrator.verify_payment(factura.id)

    with pytest.raises(ConflictError):
        orchestrator.update_inscription(inscripcion.id, matricula=False)
    assert db.session.get(Inscripcion, inscripcion.id).matricula is True


def test_matricula_false_on_pending_is_a_no_op(orchestrator, notifier, make_refs):
    inscripcion = orchestrator.create_inscription(**make_refs())
    updated = orchestrator.update_inscription(inscripcion.id, matricula=False)
    assert updated.matricula is False
    notifier.on_matriculated.assert_not_called()


@pytest.mark.parametrize(
    "valor_pagado, numero_ingreso, numero_factura, field",
    [
        ("100", "ING-1", "FAC-1", "valor_pagado"),
        ("100.000", "ING-1", "FAC-1", "valor_pagado"),
        (100.0, "ING-1", "FAC-1", "valor_pagado"),
        ("0.00", "ING-1", "FAC-1", "valor_pagado"),
        ("-5.00", "ING-1", "FAC-1", "valor_pagado"),
        ("abc", "ING-1", "FAC-1", "valor_pagado"),
        ("100.00", "", "FAC-1", "numero_ingreso"),
        ("100.00", "I" * 101, "FAC-1", "numero_ingreso"),
        ("100.00", "ING-1", "fac-1", "numero_factura"),
        ("100.00", "ING-1", "FAC 1", "numero_factura"),
        ("100.00", "ING-1", None, "numero_factura"),
    ],
)
def test_invoice_field_validation(orchestrator, make_refs, valor_pagado, numero_ingreso, numero_factura, field):
    refs = make_refs()
    inscripcion = orchestrator.create_inscription(**refs)
    with pytest.raises(ValidationError) as excinfo:
        orchestrator.create_invoice(
            inscripcion.id, refs["facturacion_id"], valor_pagado, numero_ingreso, numero_factura
        )
    assert field in {error["field"] for error in excinfo.value.errors}
    assert Factura.query.count() == 0


def test_invoice_numbers_are_unique(orchestrator, make_refs):
    first_refs = make_refs("0402084040")
    first = orchestrator.create_inscription(**first_refs)
    orchestrator.create_invoice(first.id, first_refs["facturacion_id"], "100.00", "ING-1", "FAC-1")

    second_refs = make_refs("1710034065")
    second = orchestrator.create_inscription(**second_refs)
    with pytest.raises(ConflictError):
        orchestrator.create_invoice(second.id, second_refs["facturacion_id"], "100.00", "ING-1", "FAC-2")
    with pytest.raises(ConflictError):
        orchestrator.create_invoice(second.id, second_refs["facturacion_id"], "100.00", "ING-2", "FAC-1")
    assert Factura.query.count() == 1


def test_one_invoice_per_inscription(orchestrator, make_refs):
    refs = make_refs()
    inscripcion = orchestrator.create_inscription(**refs)
    _invoice(orchestrator, inscripcion, refs["facturacion_id"], 1)
    with pytest.raises(ConflictError):
        _invoice(orchestrator, inscripcion, refs["facturacion_id"], 2)


def test_invoice_references_must_exist(orchestrator, make_refs):
    refs = make_refs()
    inscripcion = orchestrator.create_inscription(**refs)
    with pytest.raises(NotFoundError):
        orchestrator.create_invoice(9999, refs["facturacion_id"], "100.00", "ING-1", "FAC-1")
    with pytest.raises(NotFoundError):
        orchestrator.create_invoice(inscripcion.id, 9999, "100.00", "ING-1", "FAC-1")


def test_verify_missing_invoice(orchestrator):
    with pytest.raises(NotFoundError):
        orchestrator.verify_payment(9999)


def test_platform_failure_keeps_matricula(orchestrator, notifier, make_refs):
    notifier.on_matriculated.side_effect = IntegrationError("Moodle no disponible", "moodle")
    refs = make_refs()
    inscripcion = orchestrator.create_inscription(**refs)
    factura = _invoice(orchestrator, inscripcion, refs["facturacion_id"])

    with pytest.raises(IntegrationError):
        orchestrator.verify_payment(factura.id)

    assert db.session.get(Factura, factura.id).verificacion_pago is True
    assert db.session.get(Inscripcion, inscripcion.id).matricula is True


def test_lost_verification_race_does_not_notify(orchestrator, notifier, make_refs, monkeypatch):
    refs = make_refs()
    inscripcion = orchestrator.create_inscription(**refs)
    factura = _invoice(orchestrator, inscripcion, refs["facturacion_id"])
    monkeypatch.setattr(orchestrator.repository, "mark_payment_verified", lambda _factura_id: False)

    orchestrator.verify_payment(factura.id)

    notifier.on_matriculated.assert_not_called()
    assert db.session.get(Inscripcion, inscripcion.id).matricula is False


def test_delete_invoice_rules(orchestrator, make_refs):
    refs = make_refs()
    inscripcion = orchestrator.create_inscription(**refs)
    factura = _invoice(orchestrator, inscripcion, refs["facturacion_id"], 1)
    orchestrator.delete_invoice(factura.id)
    assert Factura.query.count() == 0

    factura = _invoice(orchestrator, inscripcion, refs["facturacion_id"], 2)
    orchestrator.verify_payment(factura.id)
    with pytest.raises(ConflictError):
        orchestrator.delete_invoice(factura.id)


def test_list_inscriptions_filters(orchestrator, make_refs):
    refs = make_refs("0402084040", "PY-BASICO")
    first = orchestrator.create_inscription(**refs)
    orchestrator.create_inscription(**make_refs("1710034065", "DATA-01"))
    factura = _invoice(orchestrator, first, refs["facturacion_id"])
    orchestrator.verify_payment(factura.id)

    assert len(orchestrator.list_inscriptions()) == 2
    assert [row.id for row in orchestrator.list_inscriptions(matricula=True)] == [first.id]
    assert [row.id for row in orchestrator.list_inscriptions(curso_id=refs["curso_id"])] == [first.id]
