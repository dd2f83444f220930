"""initial schema: users, sessions, login logs, sensor data, config

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001_initial_schema"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "usuarios",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("nombre", sa.String(length=100), nullable=False),
        sa.Column("correo", sa.String(length=255), nullable=False),
        sa.Column("contraseña_hash", sa.String(length=255), nullable=False),
        sa.Column(
            "rol",
            sa.Enum("admin", "usuario", name="rol_usuario", native_enum=False),
            nullable=False,
            server_default="usuario",
        ),
        sa.Column("activo", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("fecha_registro", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("ultimo_acceso", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_usuarios_correo"), "usuarios", ["correo"], unique=True)

    op.create_table(
        "sesiones",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("usuario_id", sa.Integer(), nullable=False),
        sa.Column("token", sa.Text(), nullable=False),
        sa.Column("refresh_token", sa.Text(), nullable=True),
        sa.Column("fecha_expiracion", sa.DateTime(), nullable=False),
        sa.Column("activa", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.String(length=512), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["usuario_id"], ["usuarios.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("token"),
    )
    op.create_index(op.f("ix_sesiones_usuario_id"), "sesiones", ["usuario_id"], unique=False)
    op.create_index(op.f("ix_sesiones_refresh_token"), "sesiones", ["refresh_token"], unique=False)
    op.create_index("ix_sesiones_activa_expiracion", "sesiones", ["activa", "fecha_expiracion"], unique=False)

    op.create_table(
        "login_logs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("usuario_id", sa.Integer(), nullable=True),
        sa.Column("correo", sa.String(length=255), nullable=False),
        sa.Column("exitoso", sa.Boolean(), nullable=False),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.String(length=512), nullable=True),
        sa.Column("mensaje", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["usuario_id"], ["usuarios.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_login_logs_usuario_id"), "login_logs", ["usuario_id"], unique=False)
    op.create_index("ix_login_logs_correo_created_at", "login_logs", ["correo", "created_at"], unique=False)

    op.create_table(
        "datos_sensores",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("temperatura", sa.Float(), nullable=False),
        sa.Column("humedad", sa.Float(), nullable=False),
        sa.Column("gas", sa.Float(), nullable=False),
        sa.Column("esp32_id", sa.String(length=50), nullable=False, server_default="ESP32_001"),
        sa.Column("fecha_registro", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_datos_sensores_device_recorded_at", "datos_sensores", ["esp32_id", "fecha_registro"], unique=False
    )

    op.create_table(
        "configuracion",
        sa.Column("clave", sa.String(length=64), nullable=False),
        sa.Column("valor", sa.String(length=255), nullable=False),
        sa.PrimaryKeyConstraint("clave"),
    )
    op.bulk_insert(
        sa.table("configuracion", sa.column("clave", sa.String), sa.column("valor", sa.String)),
        [
            {"clave": "temperatura_max", "valor": "35"},
            {"clave": "humedad_max", "valor": "80"},
            {"clave": "gas_max", "valor": "600"},
        ],
    )


def downgrade() -> None:
    op.drop_table("configuracion")
    op.drop_index("ix_datos_sensores_device_recorded_at", table_name="datos_sensores")
    op.drop_table("datos_sensores")
    op.drop_index("ix_login_logs_correo_created_at", table_name="login_logs")
    op.drop_index(op.f("ix_login_logs_usuario_id"), table_name="login_logs")
    op.drop_table("login_logs")
    op.drop_index("ix_sesiones_activa_expiracion", table_name="sesiones")
    op.drop_index(op.f("ix_sesiones_refresh_token"), table_name="sesiones")
    op.drop_index(op.f("ix_sesiones_usuario_id"), table_name="sesiones")
    op.drop_table("sesiones")
    op.drop_index(op.f("ix_usuarios_correo"), table_name="usuarios")
    op.drop_table("usuarios")
