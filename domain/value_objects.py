"""Domain Value Objects"""
from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import date, timedelta
from typing import Optional


class DateRange(BaseModel):
    """Value Object for a stay: check-in date plus a whole number of nights"""
    model_config = ConfigDict(frozen=True)

    check_in: date
    nights: int = Field(ge=1)

    @property
    def check_out(self) -> date:
        """Check-out is calendar arithmetic, never elapsed time"""
        return self.check_in + timedelta(days=self.nights)

    def overlaps(self, other: "DateRange") -> bool:
        """Half-open interval test; adjacent stays do not overlap"""
        return self.check_in < other.check_out and self.check_out > other.check_in

    def nights_within(self, start: date, end: date) -> int:
        """Number of nights of this stay falling inside [start, end)"""
        lower = max(self.check_in, start)
        upper = min(self.check_out, end)
        return max(0, (upper - lower).days)


class GuestInfo(BaseModel):
    """Value Object carrying guest details supplied with a booking"""
    model_config = ConfigDict(frozen=True)

    first_name: str = Field(min_length=1)
    last_name: str = ""
    email: Optional[str] = None
    phone: str = Field(min_length=1)

    @field_validator('first_name', 'phone')
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('must not be blank')
        return v

    @field_validator('last_name')
    @classmethod
    def strip_last_name(cls, v: str) -> str:
        return v.strip()

    @classmethod
    def from_full_name(cls, full_name: str, phone: str, email: Optional[str] = None) -> "GuestInfo":
        """Split a display name on its first space into first and last name"""
        parts = full_name.strip().split(None, 1)
        first_name = parts[0] if parts else ""
        last_name = parts[1] if len(parts) > 1 else ""
        return cls(first_name=first_name, last_name=last_name, email=email, phone=phone)
