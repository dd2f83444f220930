from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from sensorhub.db.base import Base


class LoginLog(Base):
    __tablename__ = "login_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int | None] = mapped_column(
        "usuario_id", Integer, ForeignKey("usuarios.id", ondelete="SET NULL"), nullable=True, index=True
    )
    email: Mapped[str] = mapped_column("correo", String(255), nullable=False)
    success: Mapped[bool] = mapped_column("exitoso", Boolean, nullable=False)
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(512), nullable=True)
    message: Mapped[str | None] = mapped_column("mensaje", String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


Index("ix_login_logs_correo_created_at", LoginLog.email, LoginLog.created_at)
