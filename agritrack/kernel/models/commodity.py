"""
Commodity lookup table backing the forecast type listing.
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from agritrack.kernel.models.base import Base


class Commodity(Base):
    """Read-only list of commodity types offered for forecasting."""

    __tablename__ = "commodity"

    commodity_type: Mapped[str] = mapped_column(
        String(100),
        primary_key=True,
    )
