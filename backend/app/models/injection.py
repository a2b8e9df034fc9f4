from datetime import datetime
from typing import Optional
from sqlalchemy import Column, String, Boolean, Integer, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from .base import Base, TimestampMixin, generate_uuid


class InjectionStatus:
    DONE = "done"
    NOT_DONE = "not_done"
    PENDING = "pending"

    ALL = [DONE, NOT_DONE, PENDING]


class Injection(Base, TimestampMixin):
    """One ledger row per administered or skipped dose."""
    __tablename__ = "injections"

    id = Column(String, primary_key=True, default=generate_uuid)
    patient_id = Column(String, ForeignKey("patients.id"), nullable=False, index=True)
    date = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    # Exactly one of od / os is 1
    od = Column(Integer, nullable=False, default=0)
    os = Column(Integer, nullable=False, default=0)

    # Both False means pending
    done = Column(Boolean, nullable=False, default=False)
    not_done = Column(Boolean, nullable=False, default=False)

    treatment_type = Column(String(200), nullable=False, default="")

    patient = relationship("Patient", back_populates="injections")

    @property
    def eye(self) -> Optional[str]:
        if self.od == 1:
            return "OD"
        if self.os == 1:
            return "OS"
        return None

    @property
    def status(self) -> str:
        if self.done:
            return InjectionStatus.DONE
        if self.not_done:
            return InjectionStatus.NOT_DONE
        return InjectionStatus.PENDING

    @status.setter
    def status(self, value: str):
        if value not in (InjectionStatus.DONE, InjectionStatus.NOT_DONE):
            raise ValueError(f"Injection status cannot be set to '{value}'")
        self.done = value == InjectionStatus.DONE
        self.not_done = value == InjectionStatus.NOT_DONE
