# slotqueue/db/models/patients/clinic_patient.py
from typing import Optional
from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field
from datetime import datetime

class ClinicPatient(SQLModel, table=True):
    __tablename__ = "clinic_patients"
    __table_args__ = (UniqueConstraint("clinic_id", "patient_id"),)
    id: Optional[int] = Field(default=None, primary_key=True)
    clinic_id: int = Field(index=True)
    patient_id: int = Field(foreign_key="patients.id")
    registration_source: str = Field(default="mobile_app")
    created_at: datetime = Field(default_factory=datetime.utcnow)
