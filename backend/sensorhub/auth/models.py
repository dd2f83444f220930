from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from sensorhub.db.base import Base

ROLE_ADMIN = "admin"
ROLE_USER = "usuario"
ROLES = (ROLE_ADMIN, ROLE_USER)


class User(Base):
    __tablename__ = "usuarios"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column("nombre", String(100), nullable=False)
    # case-sensitive as stored
    email: Mapped[str] = mapped_column("correo", String(255), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column("contraseña_hash", String(255), nullable=False)
    role: Mapped[str] = mapped_column(
        "rol",
        Enum(*ROLES, name="rol_usuario", native_enum=False),
        nullable=False,
        default=ROLE_USER,
    )
    is_active: Mapped[bool] = mapped_column("activo", Boolean, nullable=False, default=True)
    registered_at: Mapped[datetime] = mapped_column(
        "fecha_registro", DateTime, nullable=False, default=datetime.utcnow
    )
    last_access_at: Mapped[datetime | None] = mapped_column("ultimo_acceso", DateTime, nullable=True)


class UserSession(Base):
    __tablename__ = "sesiones"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)  # 128 random bits, hex
    user_id: Mapped[int] = mapped_column(
        "usuario_id", Integer, ForeignKey("usuarios.id", ondelete="CASCADE"), nullable=False, index=True
    )
    token: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    refresh_token: Mapped[str | None] = mapped_column(Text, nullable=True, index=True)
    expires_at: Mapped[datetime] = mapped_column("fecha_expiracion", DateTime, nullable=False)
    active: Mapped[bool] = mapped_column("activa", Boolean, nullable=False, default=True)
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(512), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


Index("ix_sesiones_activa_expiracion", UserSession.active, UserSession.expires_at)
