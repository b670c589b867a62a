from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, Column, Integer, Numeric, String
from sqlalchemy.sql import func

from app.core.database import Base
from app.models.types import UTCDateTime


class Booking(Base):
    """A client booked into a single time slot."""

    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    client_name = Column(String(120), nullable=False)

    # One booking per exact instant; the index is the authoritative guard
    scheduled_at = Column(UTCDateTime(), nullable=False, unique=True, index=True)

    value = Column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))

    # Audit timestamps
    created_at = Column(UTCDateTime(), server_default=func.now())
    updated_at = Column(UTCDateTime(), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("value >= 0", name="check_non_negative_value"),
    )

    def occupies(self, instant: datetime) -> bool:
        """Whether this booking holds exactly ``instant``."""
        return self.scheduled_at == instant

    def __repr__(self):
        return (
            f"<Booking(id={self.id}, client_name='{self.client_name}', "
            f"scheduled_at='{self.scheduled_at}', value={self.value})>"
        )
