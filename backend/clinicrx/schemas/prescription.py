from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, computed_field


class PrescriptionStatus(str, Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


# Recognised, not closed: free text is accepted as long as it is not blank.
FREQUENCY_OPTIONS = [
    "Once daily",
    "Twice daily",
    "Three times daily",
    "Four times daily",
    "Every 6 hours",
    "Every 8 hours",
    "Every 12 hours",
    "Once weekly",
    "As needed",
    "Before meals",
    "After meals",
    "At bedtime",
]

DURATION_OPTIONS = [
    "7 days",
    "10 days",
    "14 days",
    "30 days",
    "60 days",
    "90 days",
    "Until finished",
    "As directed",
]

MAX_QUANTITY = 1000
MAX_REFILLS = 12
DEFAULT_QUANTITY = 30


class MedicationLine(BaseModel):
    name: str = ""
    dosage: str = ""  # free form, e.g. "500mg"
    frequency: str = ""
    duration: str = ""  # "30 days", or a sentinel such as "Until finished"
    instructions: str = ""
    quantity: int = DEFAULT_QUANTITY
    refills: int = 0

    class Config:
        from_attributes = True


class PrescriptionForm(BaseModel):
    """Candidate prescription as submitted by the create/edit form.

    Every field is optional so an incomplete candidate can still be built and
    handed to the validator, which reports what is missing.
    """
    patient_id: Optional[int] = None
    diagnosis: str = ""
    medications: List[MedicationLine] = Field(default_factory=list)
    notes: str = ""
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: PrescriptionStatus = PrescriptionStatus.ACTIVE


class PrescriptionRecord(BaseModel):
    id: int
    prescription_number: str
    patient_id: int
    diagnosis: str
    medications: List[MedicationLine]
    notes: str = ""
    start_date: date
    end_date: Optional[date] = None
    status: PrescriptionStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @computed_field
    @property
    def total_medications(self) -> int:
        return len(self.medications)


class PrescriptionDetail(PrescriptionRecord):
    is_expired: bool = False
    total_days: int = 0
    has_refills_available: bool = False
    can_be_renewed: bool = False
    # Advisory only, shown beside the medication lines
    allergies: List[str] = Field(default_factory=list)
    allergy_banner: str = "None recorded"


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


class PrescriptionPage(BaseModel):
    data: List[PrescriptionRecord]
    pagination: Pagination


class StatusChange(BaseModel):
    status: str


class EndDatePreview(BaseModel):
    start_date: Optional[date] = None
    duration: str = ""
    end_date: Optional[date] = None
