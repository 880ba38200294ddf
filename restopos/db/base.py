"""Shared SQLAlchemy base declarative class and model imports."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for ORM models."""


# Import model modules so metadata is populated before create_all.
from restopos.models import audit_log as _audit_log  # noqa: E402,F401
from restopos.models import bill as _bill  # noqa: E402,F401
from restopos.models import kitchen_order as _kitchen_order  # noqa: E402,F401
from restopos.models import menu as _menu  # noqa: E402,F401
from restopos.models import order as _order  # noqa: E402,F401
from restopos.models import setting as _setting  # noqa: E402,F401
from restopos.models import staff as _staff  # noqa: E402,F401
