"""Shared schema types."""

from datetime import datetime
from decimal import Decimal
from typing import Annotated

from pydantic import AfterValidator, PlainSerializer

from restopos.utils.time import as_utc

# Decimal amounts stay exact in Python and travel as JSON numbers.
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

# SQLite returns naive datetimes; both stores hold UTC.
UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]
