from datetime import datetime
from uuid import uuid4

from sqlmodel import Field, SQLModel

from agenda.models.timestamps import timestamp_column, utc_now


def normalize_email(email: str) -> str:
    return email.strip().lower()


class Client(SQLModel, table=True):
    __tablename__ = "clients"
    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    email: str = Field(unique=True, index=True)  # always normalize_email()'d
    name: str
    phone: str | None = None
    created_at: datetime = Field(default_factory=utc_now, sa_column=timestamp_column())
    updated_at: datetime = Field(default_factory=utc_now, sa_column=timestamp_column())
