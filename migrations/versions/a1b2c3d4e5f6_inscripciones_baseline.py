"""inscripciones, facturas and integration tables

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-17 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "a1b2c3d4e5f6"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "persona",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("ci_pasaporte", sa.String(length=20), nullable=False),
        sa.Column("nombres", sa.String(length=100), nullable=False),
        sa.Column("apellidos", sa.String(length=100), nullable=False),
        sa.Column("num_telefono", sa.String(length=40), nullable=False, server_default=""),
        sa.Column("correo", sa.String(length=150), nullable=False),
        sa.Column("pais", sa.String(length=80), nullable=False, server_default=""),
        sa.Column("provincia_estado", sa.String(length=80), nullable=False, server_default=""),
        sa.Column("ciudad", sa.String(length=80), nullable=False, server_default=""),
        sa.Column("profesion", sa.String(length=100), nullable=False, server_default=""),
        sa.Column("institucion", sa.String(length=150), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("ci_pasaporte"),
    )
    op.create_table(
        "curso",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("nombre_corto_curso", sa.String(length=30), nullable=False),
        sa.Column("nombre_curso", sa.String(length=150), nullable=False),
        sa.Column("modalidad_curso", sa.String(length=50), nullable=False, server_default=""),
        sa.Column("descripcion_curso", sa.String(length=500), nullable=False, server_default=""),
        sa.Column("valor_curso", sa.Numeric(10, 2), nullable=False),
        sa.Column("enlace_pago", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("fecha_inicio_curso", sa.Date(), nullable=False),
        sa.Column("fecha_fin_curso", sa.Date(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("fecha_fin_curso >= fecha_inicio_curso", name="ck_curso_fechas"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("nombre_corto_curso", name="uq_curso_nombre_corto"),
    )
    op.create_table(
        "datos_facturacion",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("razon_social", sa.String(length=150), nullable=False),
        sa.Column("identificacion_tributaria", sa.String(length=20), nullable=False),
        sa.Column("telefono", sa.String(length=40), nullable=False),
        sa.Column("correo_factura", sa.String(length=150), nullable=False),
        sa.Column("direccion", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "comprobante",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("ruta_comprobante", sa.String(length=255), nullable=False),
        sa.Column("tipo_archivo", sa.String(length=100), nullable=False),
        sa.Column("nombre_archivo", sa.String(length=255), nullable=False),
        sa.Column("fecha_subida", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "descuento",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "tipo_descuento",
            sa.Enum("ESTUDIANTE", "PROFESIONAL", "INSTITUCIONAL", "PROMOCIONAL", name="tipo_descuento"),
            nullable=False,
        ),
        sa.Column("valor_descuento", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("porcentaje_descuento", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("descripcion_descuento", sa.String(length=255), nullable=False, server_default=""),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "inscripcion",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("curso_id", sa.Integer(), nullable=False),
        sa.Column("persona_id", sa.Integer(), nullable=False),
        sa.Column("facturacion_id", sa.Integer(), nullable=False),
        sa.Column("comprobante_id", sa.Integer(), nullable=False),
        sa.Column("descuento_id", sa.Integer(), nullable=True),
        sa.Column("matricula", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("fecha_inscripcion", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["curso_id"], ["curso.id"]),
        sa.ForeignKeyConstraint(["persona_id"], ["persona.id"]),
        sa.ForeignKeyConstraint(["facturacion_id"], ["datos_facturacion.id"]),
        sa.ForeignKeyConstraint(["comprobante_id"], ["comprobante.id"]),
        sa.ForeignKeyConstraint(["descuento_id"], ["descuento.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("persona_id", "curso_id", name="uq_inscripcion_persona_curso"),
        sa.UniqueConstraint("comprobante_id", name="uq_inscripcion_comprobante"),
    )
    op.create_index("ix_inscripcion_curso_matricula", "inscripcion", ["curso_id", "matricula"], unique=False)
    op.create_table(
        "factura",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("inscripcion_id", sa.Integer(), nullable=False),
        sa.Column("facturacion_id", sa.Integer(), nullable=False),
        sa.Column("valor_pagado", sa.Numeric(10, 2), nullable=False),
        sa.Column("numero_ingreso", sa.String(length=100), nullable=False),
        sa.Column("numero_factura", sa.String(length=100), nullable=False),
        sa.Column("verificacion_pago", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("valor_pagado > 0", name="ck_factura_valor_pagado"),
        sa.ForeignKeyConstraint(["inscripcion_id"], ["inscripcion.id"]),
        sa.ForeignKeyConstraint(["facturacion_id"], ["datos_facturacion.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("numero_ingreso", name="uq_factura_numero_ingreso"),
        sa.UniqueConstraint("numero_factura", name="uq_factura_numero_factura"),
    )
    op.create_index("ix_factura_inscripcion_id", "factura", ["inscripcion_id"], unique=False)
    op.create_table(
        "curso_moodle",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("curso_id", sa.Integer(), nullable=False),
        sa.Column("moodle_course_id", sa.Integer(), nullable=False),
        sa.Column("shortname", sa.String(length=100), nullable=False, server_default=""),
        sa.Column("activo", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.ForeignKeyConstraint(["curso_id"], ["curso.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("curso_id"),
    )
    op.create_table(
        "grupo_telegram",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("curso_id", sa.Integer(), nullable=False),
        sa.Column("telegram_group_id", sa.String(length=50), nullable=False),
        sa.Column("nombre_grupo", sa.String(length=150), nullable=False),
        sa.Column("enlace_invitacion", sa.String(length=255), nullable=False),
        sa.Column("activo", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.ForeignKeyConstraint(["curso_id"], ["curso.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("curso_id"),
        sa.UniqueConstraint("telegram_group_id"),
    )
    op.create_table(
        "inscripcion_moodle",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("inscripcion_id", sa.Integer(), nullable=False),
        sa.Column("moodle_user_id", sa.Integer(), nullable=True),
        sa.Column("moodle_username", sa.String(length=150), nullable=False, server_default=""),
        sa.Column(
            "estado_matricula",
            sa.Enum("MATRICULADO", "ERROR", name="estado_matricula_moodle"),
            nullable=False,
        ),
        sa.Column("notas", sa.String(length=500), nullable=False, server_default=""),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["inscripcion_id"], ["inscripcion.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("inscripcion_id"),
    )


def downgrade():
    op.drop_table("inscripcion_moodle")
    op.drop_table("grupo_telegram")
    op.drop_table("curso_moodle")
    op.drop_index("ix_factura_inscripcion_id", table_name="factura")
    op.drop_table("factura")
    op.drop_index("ix_inscripcion_curso_matricula", table_name="inscripcion")
    op.drop_table("inscripcion")
    op.drop_table("descuento")
    op.drop_table("comprobante")
    op.drop_table("datos_facturacion")
    op.drop_table("curso")
    op.drop_table("persona")
