from datetime import datetime

from sqlalchemy import DateTime, String, orm
from sqlalchemy.orm import mapped_column

from typing_extensions import Annotated

str512 = Annotated[str, 512]
str1024 = Annotated[str, 1024]
keypk = Annotated[str, mapped_column(String(512), primary_key=True)]
timestamptz = Annotated[datetime, mapped_column(DateTime(timezone=True), nullable=False)]


class Base(orm.DeclarativeBase):
    """Declarative base for the session tables."""

    type_annotation_map = {
        str512: String(512),
        str1024: String(1024),
        keypk: String(512),
        timestamptz: DateTime(timezone=True),
    }
