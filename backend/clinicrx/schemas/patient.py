from pydantic import BaseModel, Field, computed_field
from typing import List, Literal, Optional
from datetime import date


class PatientCreate(BaseModel):
    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[Literal["MALE", "FEMALE", "OTHER"]] = None
    allergies: List[str] = Field(default_factory=list)
    medications: List[str] = Field(default_factory=list)


class PatientResponse(BaseModel):
    id: int
    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    allergies: List[str] = Field(default_factory=list)
    medications: List[str] = Field(default_factory=list)
    age: Optional[int] = None  # presentation only

    class Config:
        from_attributes = True

    @computed_field
    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class AllergyAdvisory(BaseModel):
    """Read-only banner shown next to the medication form."""
    patient_id: int
    allergies: List[str]
    banner: str
