from uuid import uuid4

from sqlmodel import Field, SQLModel


class Property(SQLModel, table=True):
    """Only what booking needs to link and price-check a property."""

    __tablename__ = "properties"
    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    title: str = ""
    price: float | None = None
    easybroker_public_id: str | None = Field(default=None, unique=True, index=True)
