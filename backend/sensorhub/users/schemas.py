from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class UserUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str | None = Field(alias="nombre", default=None, min_length=2, max_length=100)
    email: EmailStr | None = Field(alias="correo", default=None)
    role: Literal["admin", "usuario"] | None = Field(alias="rol", default=None)


class PasswordChangeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # only required when users change their own password
    current_password: str | None = Field(alias="contraseñaActual", default=None, max_length=72)
    new_password: str = Field(alias="nuevaContraseña", min_length=6, max_length=72)
