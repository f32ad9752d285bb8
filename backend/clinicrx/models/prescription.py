"""
Prescription: one diagnosis, one or more medication lines.

Edits replace the whole document (lines included); there is no partial
patch. Line order is kept through `position` and line 0 drives the
derived end date.
"""
from sqlalchemy import Column, Integer, String, ForeignKey, Date, DateTime, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from clinicrx.db.base import Base


class Prescription(Base):
    __tablename__ = "prescriptions"

    id = Column(Integer, primary_key=True, index=True)
    prescription_number = Column(String(16), unique=True, nullable=False, index=True)  # RX-00000001
    patient_id = Column(Integer, ForeignKey("patients.id", ondelete="CASCADE"), nullable=False, index=True)
    diagnosis = Column(String(500), nullable=False)
    notes = Column(Text, nullable=False, default="")
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    status = Column(String(16), nullable=False, default="ACTIVE", index=True)  # ACTIVE | COMPLETED | CANCELLED
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    patient = relationship("Patient", backref="prescriptions")
    medications = relationship(
        "PrescriptionMedication",
        order_by="PrescriptionMedication.position",
        cascade="all, delete-orphan",
        back_populates="prescription",
    )

    def __repr__(self):
        return f"<Prescription {self.prescription_number} status={self.status}>"


class PrescriptionMedication(Base):
    __tablename__ = "prescription_medications"

    id = Column(Integer, primary_key=True, index=True)
    prescription_id = Column(Integer, ForeignKey("prescriptions.id", ondelete="CASCADE"), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    name = Column(String(100), nullable=False)
    dosage = Column(String(50), nullable=False)
    frequency = Column(String(50), nullable=False)
    duration = Column(String(50), nullable=False)  # "30 days", "Until finished"
    instructions = Column(String(500), nullable=False, default="")
    quantity = Column(Integer, nullable=False)
    refills = Column(Integer, nullable=False, default=0)

    prescription = relationship("Prescription", back_populates="medications")
