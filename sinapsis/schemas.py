"""Modelos Pydantic del dominio: subestaciones y redes de media tensión.

Los nombres JSON siguen el contrato público de la API (camelCase:
`redesMT`, `tensaoNominal`, `subestacaoId`); en Python se usan los
nombres snake_case y ambos se aceptan al validar.

La red guarda la referencia a su subestación como un id escalar
(`subestacao_id`), de modo que serializar una subestación con sus redes
nunca produce ciclos.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Annotated, Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, field_validator

# Decimal exacto en Python, número en JSON
JsonDecimal = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

TensaoNominal = Annotated[JsonDecimal, Field(ge=Decimal("1.0"), le=Decimal("500.0"))]

# Al menos un carácter distinto de espacio
NOT_BLANK = r"\S"


class RedeMT(BaseModel):
    """Red de media tensión perteneciente a una subestación."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[int] = Field(default=None, description="Identificador asignado al crear")
    codigo: str = Field(..., min_length=1, max_length=5, description="Código único de la red")
    nome: Optional[str] = Field(default=None, max_length=100)
    tensao_nominal: Optional[TensaoNominal] = Field(
        default=None,
        alias="tensaoNominal",
        description="Tensión nominal (kV)",
    )
    subestacao_id: Optional[int] = Field(
        default=None,
        alias="subestacaoId",
        description="Subestación propietaria",
    )


class Subestacao(BaseModel):
    """Subestación con su lista ordenada de redes MT."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[int] = Field(default=None, description="Identificador asignado al crear")
    codigo: str = Field(..., min_length=1, max_length=3, pattern=NOT_BLANK, description="Código único de la subestación")
    nome: str = Field(..., min_length=1, max_length=100, pattern=NOT_BLANK)
    latitude: JsonDecimal = Field(..., ge=Decimal("-90"), le=Decimal("90"))
    longitude: JsonDecimal = Field(..., ge=Decimal("-180"), le=Decimal("180"))
    redes_mt: List[RedeMT] = Field(default_factory=list, alias="redesMT")


class LoginRequest(BaseModel):
    """Credenciales para /auth/login.

    Campos ausentes o no textuales quedan en None: el login los rechaza
    con 401 como cualquier otra credencial incorrecta.
    """
    username: Optional[str] = None
    password: Optional[str] = None

    @field_validator("username", "password", mode="before")
    @classmethod
    def _non_text_as_missing(cls, value: Any) -> Optional[str]:
        return value if isinstance(value, str) else None


class TokenResponse(BaseModel):
    token: str


class MessageResponse(BaseModel):
    message: str
