from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from sensorhub.auth.models import ROLE_USER


class LoginRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr = Field(alias="correo")
    # prevent bcrypt crash on long input
    password: str = Field(alias="contraseña", min_length=6, max_length=72)


class RegisterRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(alias="nombre", min_length=2, max_length=100)
    email: EmailStr = Field(alias="correo")
    # bcrypt hard limit = 72 bytes
    password: str = Field(alias="contraseña", min_length=6, max_length=72)
    role: Literal["admin", "usuario"] = Field(alias="rol", default=ROLE_USER)


class RefreshRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    refresh_token: str | None = Field(alias="refreshToken", default=None)
