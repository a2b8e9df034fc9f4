from sqlalchemy import Column, String, Text, Boolean, Integer
from sqlalchemy.orm import relationship
from .base import Base, TimestampMixin, generate_uuid


class Patient(Base, TimestampMixin):
    __tablename__ = "patients"

    id = Column(String, primary_key=True, default=generate_uuid)
    # Clinic chart number - digits only, leading zeros stripped
    ref_id = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String(200), nullable=False, default="")
    indication = Column(String(100), nullable=False, default="")
    medication = Column(String(100), nullable=True)
    swalis_classification = Column(String(50), nullable=True)
    observations = Column(Text, nullable=True)

    # Prescribed sessions still to be given, per eye
    remaining_od = Column(Integer, nullable=False, default=0)
    remaining_os = Column(Integer, nullable=False, default=0)
    start_od = Column(Boolean, nullable=False, default=True)

    injections = relationship(
        "Injection",
        back_populates="patient",
        cascade="all, delete-orphan",
        order_by="Injection.date.desc()",
    )

    @property
    def start_eye(self) -> str:
        return "OD" if self.start_od else "OS"

    def __repr__(self):
        return f"<Patient {self.ref_id} - {self.name}>"
