"""Booking request payload.

The request is a tagged union on ``operationType``; purchases are further
tagged on ``resourceType``. Each variant knows its own budget field and the
detail document stored under ``operation_details[operation_type]``.
"""
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, RootModel, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from agenda.core.errors import ValidationError
from agenda.models.client import normalize_email
from agenda.services.time_normalizer import parse_date

NAME_PATTERN = r"^[a-zA-ZáéíóúÁÉÍÓÚñÑüÜ\s]+$"
COMPANY_PATTERN = r"^[a-zA-Z0-9áéíóúÁÉÍÓÚñÑüÜ\s.,\-]+$"
PHONE_PATTERN = r"^[\d\s+\-()]*$"
DIGITS_PATTERN = r"^\d*$"

RentarBudget = Literal[
    "20000-30000",
    "30000-40000",
    "40000-50000",
    "50000-60000",
    "60000-80000",
    "80000-100000",
    "100000-150000",
    "mas-150000",
]
ComprarBudget = Literal[
    "2500000-3000000",
    "3000000-3500000",
    "3500000-4000000",
    "4000000-5000000",
    "5000000-6000000",
    "6000000-8000000",
    "8000000-10000000",
    "mas-10000000",
]
Banco = Literal[
    "bbva",
    "banamex",
    "santander",
    "hsbc",
    "banorte",
    "scotiabank",
    "banco-azteca",
    "bancoppel",
    "inbursa",
    "banregio",
    "banco-del-bajio",
    "banco-multiva",
    "otro-banco",
]
ModalidadInfonavit = Literal["tradicional", "cofinavit", "mejoravit", "tu-casa"]
ModalidadFovissste = Literal["tradicional", "cofinavit", "mi-vivienda"]


class _BookingBase(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    date: str = Field(min_length=1)
    time: str = Field(min_length=1, max_length=40)
    name: str = Field(min_length=2, max_length=100, pattern=NAME_PATTERN)
    email: EmailStr
    phone: str | None = Field(default=None, max_length=20, pattern=PHONE_PATTERN)
    notes: str | None = Field(default=None, max_length=1000)
    property_id: str | None = None
    agent_id: str | None = None

    @field_validator("date")
    @classmethod
    def _check_date(cls, v: str) -> str:
        parsed = parse_date(v)
        if parsed is None:
            raise ValueError("date must be YYYY-MM-DD or an ISO timestamp")
        return parsed.isoformat()

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, v: str) -> str:
        if len(v) > 255:
            raise ValueError("email must be at most 255 characters")
        return normalize_email(v)


class RentarRequest(_BookingBase):
    operation_type: Literal["rentar"]
    budget_rentar: RentarBudget
    company: str = Field(min_length=2, max_length=100, pattern=COMPANY_PATTERN)

    @property
    def budget_range(self) -> str:
        return self.budget_rentar

    def operation_details(self) -> dict[str, Any]:
        return {"company": self.company}


class _ComprarBase(_BookingBase):
    operation_type: Literal["comprar"]
    budget_comprar: ComprarBudget

    @property
    def budget_range(self) -> str:
        return self.budget_comprar


class RecursosPropiosRequest(_ComprarBase):
    resource_type: Literal["recursos-propios"]

    def operation_details(self) -> dict[str, Any]:
        return {"resource_type": self.resource_type}


class CreditoBancarioRequest(_ComprarBase):
    resource_type: Literal["credito-bancario"]
    banco: Banco
    credito_preaprobado: Literal["si", "no"]

    def operation_details(self) -> dict[str, Any]:
        return {
            "resource_type": self.resource_type,
            "banco": self.banco,
            "credito_preaprobado": self.credito_preaprobado,
        }


class InfonavitRequest(_ComprarBase):
    resource_type: Literal["infonavit"]
    modalidad_infonavit: ModalidadInfonavit
    numero_trabajador_infonavit: str | None = Field(default=None, max_length=20, pattern=DIGITS_PATTERN)

    def operation_details(self) -> dict[str, Any]:
        return {
            "resource_type": self.resource_type,
            "modalidad": self.modalidad_infonavit,
            "numero_trabajador": self.numero_trabajador_infonavit or None,
        }


class FovisssteRequest(_ComprarBase):
    resource_type: Literal["fovissste"]
    modalidad_fovissste: ModalidadFovissste
    numero_trabajador_fovissste: str | None = Field(default=None, max_length=20, pattern=DIGITS_PATTERN)

    def operation_details(self) -> dict[str, Any]:
        return {
            "resource_type": self.resource_type,
            "modalidad": self.modalidad_fovissste,
            "numero_trabajador": self.numero_trabajador_fovissste or None,
        }


ComprarRequest = Annotated[
    Union[RecursosPropiosRequest, CreditoBancarioRequest, InfonavitRequest, FovisssteRequest],
    Field(discriminator="resource_type"),
]

BookingRequest = Annotated[
    Union[RentarRequest, ComprarRequest],
    Field(discriminator="operation_type"),
]


class BookingPayload(RootModel[BookingRequest]):
    """Request body wrapper so FastAPI can validate the tagged union."""


# Discriminator values pydantic puts in error locations ahead of field names
_UNION_TAGS = frozenset(
    {"rentar", "comprar", "recursos-propios", "credito-bancario", "infonavit", "fovissste"}
)


def issue_path(loc: tuple | list) -> str:
    """``("body", "comprar", "infonavit", "modalidadInfonavit")`` -> ``"modalidadInfonavit"``."""
    parts = [str(p) for p in loc if p != "body" and p not in _UNION_TAGS]
    return ".".join(parts) or "general"


def validation_issues(exc: PydanticValidationError) -> dict[str, str]:
    issues: dict[str, str] = {}
    for err in exc.errors():
        issues[issue_path(err["loc"])] = err["msg"]
    return issues


def parse_booking_request(payload: Any) -> BookingRequest:
    """Validate a raw payload, raising the booking ``ValidationError``."""
    try:
        return BookingPayload.model_validate(payload).root
    except PydanticValidationError as e:
        raise ValidationError("Validation failed", details={"issues": validation_issues(e)}) from e
