from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum

from sqlalchemy import CheckConstraint, Enum as SAEnum, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from app.core.extensions import db


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EstadoMatriculaMoodle(str, Enum):
    MATRICULADO = "MATRICULADO"
    ERROR = "ERROR"


class TipoDescuento(str, Enum):
    ESTUDIANTE = "ESTUDIANTE"
    PROFESIONAL = "PROFESIONAL"
    INSTITUCIONAL = "INSTITUCIONAL"
    PROMOCIONAL = "PROMOCIONAL"


class Person(db.Model):
    # Datos personales del participante; el documento es unico
    __tablename__ = "persona"

    id: Mapped[int] = mapped_column(primary_key=True)
    ci_pasaporte: Mapped[str] = mapped_column(db.String(20), unique=True, nullable=False)
    nombres: Mapped[str] = mapped_column(db.String(100), nullable=False)
    apellidos: Mapped[str] = mapped_column(db.String(100), nullable=False)
    num_telefono: Mapped[str] = mapped_column(db.String(40), nullable=False, default="")
    correo: Mapped[str] = mapped_column(db.String(150), nullable=False)
    pais: Mapped[str] = mapped_column(db.String(80), nullable=False, default="")
    provincia_estado: Mapped[str] = mapped_column(db.String(80), nullable=False, default="")
    ciudad: Mapped[str] = mapped_column(db.String(80), nullable=False, default="")
    profesion: Mapped[str] = mapped_column(db.String(100), nullable=False, default="")
    institucion: Mapped[str] = mapped_column(db.String(150), nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    @property
    def full_name(self) -> str:
        return f"{self.nombres} {self.apellidos}".strip()


class Curso(db.Model):
    __tablename__ = "curso"
    __table_args__ = (
        CheckConstraint("fecha_fin_curso >= fecha_inicio_curso", name="ck_curso_fechas"),
        UniqueConstraint("nombre_corto_curso", name="uq_curso_nombre_corto"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    nombre_corto_curso: Mapped[str] = mapped_column(db.String(30), nullable=False)
    nombre_curso: Mapped[str] = mapped_column(db.String(150), nullable=False)
    modalidad_curso: Mapped[str] = mapped_column(db.String(50), nullable=False, default="")
    descripcion_curso: Mapped[str] = mapped_column(db.String(500), nullable=False, default="")
    valor_curso: Mapped[Decimal] = mapped_column(db.Numeric(10, 2), nullable=False)
    enlace_pago: Mapped[str] = mapped_column(db.String(255), nullable=False, default="")
    fecha_inicio_curso: Mapped[date] = mapped_column(nullable=False)
    fecha_fin_curso: Mapped[date] = mapped_column(nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    @validates("fecha_inicio_curso", "fecha_fin_curso")
    def validate_fechas(self, key, value):
        inicio = value if key == "fecha_inicio_curso" else self.fecha_inicio_curso
        fin = value if key == "fecha_fin_curso" else self.fecha_fin_curso
        if inicio and fin and fin < inicio:
            raise ValueError("La fecha de fin del curso no puede ser anterior a la de inicio")
        return value


class DatosFacturacion(db.Model):
    __tablename__ = "datos_facturacion"

    id: Mapped[int] = mapped_column(primary_key=True)
    razon_social: Mapped[str] = mapped_column(db.String(150), nullable=False)
    identificacion_tributaria: Mapped[str] = mapped_column(db.String(20), nullable=False)
    telefono: Mapped[str] = mapped_column(db.String(40), nullable=False)
    correo_factura: Mapped[str] = mapped_column(db.String(150), nullable=False)
    direccion: Mapped[str] = mapped_column(db.String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)


class Comprobante(db.Model):
    # Metadatos del comprobante de pago subido; el fichero vive fuera de la BD
    __tablename__ = "comprobante"

    id: Mapped[int] = mapped_column(primary_key=True)
    ruta_comprobante: Mapped[str] = mapped_column(db.String(255), nullable=False)
    tipo_archivo: Mapped[str] = mapped_column(db.String(100), nullable=False)
    nombre_archivo: Mapped[str] = mapped_column(db.String(255), nullable=False)
    fecha_subida: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)


class Descuento(db.Model):
    __tablename__ = "descuento"

    id: Mapped[int] = mapped_column(primary_key=True)
    tipo_descuento: Mapped[TipoDescuento] = mapped_column(
        SAEnum(TipoDescuento, name="tipo_descuento"),
        nullable=False,
    )
    valor_descuento: Mapped[Decimal] = mapped_column(db.Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    porcentaje_descuento: Mapped[Decimal] = mapped_column(
        db.Numeric(5, 2),
        nullable=False,
        default=Decimal("0.00"),
    )
    descripcion_descuento: Mapped[str] = mapped_column(db.String(255), nullable=False, default="")


class Inscripcion(db.Model):
    # Agregado raiz: PENDIENTE (matricula=False) -> MATRICULADO (matricula=True)
    __tablename__ = "inscripcion"
    __table_args__ = (
        UniqueConstraint("persona_id", "curso_id", name="uq_inscripcion_persona_curso"),
        UniqueConstraint("comprobante_id", name="uq_inscripcion_comprobante"),
        Index("ix_inscripcion_curso_matricula", "curso_id", "matricula"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    curso_id: Mapped[int] = mapped_column(ForeignKey("curso.id"), nullable=False)
    persona_id: Mapped[int] = mapped_column(ForeignKey("persona.id"), nullable=False)
    facturacion_id: Mapped[int] = mapped_column(ForeignKey("datos_facturacion.id"), nullable=False)
    comprobante_id: Mapped[int] = mapped_column(ForeignKey("comprobante.id"), nullable=False)
    descuento_id: Mapped[int | None] = mapped_column(ForeignKey("descuento.id"), nullable=True)
    matricula: Mapped[bool] = mapped_column(nullable=False, default=False)
    fecha_inscripcion: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    @validates("matricula")
    def validate_matricula(self, _key, value):
        if self.matricula and not value:
            raise ValueError("La matricula no puede revertirse")
        return value


class Factura(db.Model):
    __tablename__ = "factura"
    __table_args__ = (
        UniqueConstraint("numero_ingreso", name="uq_factura_numero_ingreso"),
        UniqueConstraint("numero_factura", name="uq_factura_numero_factura"),
        CheckConstraint("valor_pagado > 0", name="ck_factura_valor_pagado"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    inscripcion_id: Mapped[int] = mapped_column(ForeignKey("inscripcion.id"), nullable=False, index=True)
    facturacion_id: Mapped[int] = mapped_column(ForeignKey("datos_facturacion.id"), nullable=False)
    valor_pagado: Mapped[Decimal] = mapped_column(db.Numeric(10, 2), nullable=False)
    numero_ingreso: Mapped[str] = mapped_column(db.String(100), nullable=False)
    numero_factura: Mapped[str] = mapped_column(db.String(100), nullable=False)
    verificacion_pago: Mapped[bool] = mapped_column(nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    @validates("verificacion_pago")
    def validate_verificacion(self, _key, value):
        if self.verificacion_pago and not value:
            raise ValueError("La verificacion de pago no puede revertirse")
        return value


class CursoMoodle(db.Model):
    # Correspondencia curso local -> curso en Moodle
    __tablename__ = "curso_moodle"

    id: Mapped[int] = mapped_column(primary_key=True)
    curso_id: Mapped[int] = mapped_column(ForeignKey("curso.id"), unique=True, nullable=False)
    moodle_course_id: Mapped[int] = mapped_column(nullable=False)
    shortname: Mapped[str] = mapped_column(db.String(100), nullable=False, default="")
    activo: Mapped[bool] = mapped_column(nullable=False, default=True)

    curso = relationship("Curso")


class GrupoTelegram(db.Model):
    __tablename__ = "grupo_telegram"

    id: Mapped[int] = mapped_column(primary_key=True)
    curso_id: Mapped[int] = mapped_column(ForeignKey("curso.id"), unique=True, nullable=False)
    telegram_group_id: Mapped[str] = mapped_column(db.String(50), unique=True, nullable=False)
    nombre_grupo: Mapped[str] = mapped_column(db.String(150), nullable=False)
    enlace_invitacion: Mapped[str] = mapped_column(db.String(255), nullable=False)
    activo: Mapped[bool] = mapped_column(nullable=False, default=True)

    curso = relationship("Curso")


class InscripcionMoodle(db.Model):
    # Resultado de la matricula en Moodle, para seguimiento manual de errores
    __tablename__ = "inscripcion_moodle"

    id: Mapped[int] = mapped_column(primary_key=True)
    inscripcion_id: Mapped[int] = mapped_column(ForeignKey("inscripcion.id"), unique=True, nullable=False)
    moodle_user_id: Mapped[int | None] = mapped_column(nullable=True)
    moodle_username: Mapped[str] = mapped_column(db.String(150), nullable=False, default="")
    estado_matricula: Mapped[EstadoMatriculaMoodle] = mapped_column(
        SAEnum(EstadoMatriculaMoodle, name="estado_matricula_moodle"),
        nullable=False,
        default=EstadoMatriculaMoodle.MATRICULADO,
    )
    notas: Mapped[str] = mapped_column(db.String(500), nullable=False, default="")
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow, nullable=False)


def seed_demo_data(session) -> None:
    today = date.today()
    python = Curso(
        nombre_corto_curso="PY-BASICO",
        nombre_curso="Python desde cero",
        modalidad_curso="Virtual",
        descripcion_curso="Fundamentos de programacion con Python",
        valor_curso=Decimal("100.00"),
        enlace_pago="https://pagos.example.com/py-basico",
        fecha_inicio_curso=today + timedelta(days=30),
        fecha_fin_curso=today + timedelta(days=90),
    )
    datos = Curso(
        nombre_corto_curso="DATA-01",
        nombre_curso="Analisis de datos",
        modalidad_curso="Presencial",
        descripcion_curso="Introduccion al analisis de datos",
        valor_curso=Decimal("250.00"),
        enlace_pago="https://pagos.example.com/data-01",
        fecha_inicio_curso=today + timedelta(days=45),
        fecha_fin_curso=today + timedelta(days=120),
    )
    session.add_all([python, datos])
    session.flush()

    session.add_all(
        [
            Descuento(
                tipo_descuento=TipoDescuento.ESTUDIANTE,
                valor_descuento=Decimal("20.00"),
                porcentaje_descuento=Decimal("20.00"),
                descripcion_descuento="Descuento estudiantes",
            ),
            CursoMoodle(curso_id=python.id, moodle_course_id=42, shortname="py-basico"),
            GrupoTelegram(
                curso_id=python.id,
                telegram_group_id="-100123456",
                nombre_grupo="Python desde cero",
                enlace_invitacion="https://t.me/+pybasico",
            ),
        ]
    )
    session.commit()
