from sqlalchemy import Column, Integer, String, Date, DateTime
from sqlalchemy.sql import func
from sqlalchemy.types import JSON
from clinicrx.db.base import Base


class Patient(Base):
    """
    Patient directory entry.

    Read-only to the prescription engine: only `allergies` (advisory banner)
    and `date_of_birth` (age display) are consumed.
    """
    __tablename__ = "patients"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=True, index=True)
    phone = Column(String(64), nullable=True)
    date_of_birth = Column(Date, nullable=True)
    gender = Column(String(16), nullable=True)  # MALE | FEMALE | OTHER
    allergies = Column(JSON, nullable=False, default=list)  # ordered, free text
    medications = Column(JSON, nullable=False, default=list)  # currently taken, informational
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Patient id={self.id} name={self.first_name} {self.last_name}>"
