from typing import Optional
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from .....db.models import ClinicPatient, Patient
from .....exceptions import PatientResolutionError
from .....application.ports.patient_directory import PatientDirectory


class SqlPatientDirectory(PatientDirectory):
    def __init__(self, session: Session):
        self.session = session

    def _find(self, phone: Optional[str], email: Optional[str]) -> Optional[Patient]:
        if phone:
            p = self.session.exec(select(Patient).where(Patient.phone == phone)).first()
            if p:
                return p
        if email:
            return self.session.exec(select(Patient).where(Patient.email == email)).first()
        return None

    def find_or_create_patient(self, name: str, phone: Optional[str], email: Optional[str]) -> int:
        existing = self._find(phone, email)
        if existing:
            return existing.id
        patient = Patient(full_name=name, phone=phone, email=email)
        try:
            with self.session.begin_nested():
                self.session.add(patient)
        except IntegrityError:
            # Another approval created the same phone number first
            existing = self._find(phone, email)
            if not existing:
                raise PatientResolutionError("Patient record could not be created", context={"phone": phone})
            return existing.id
        return patient.id

    def ensure_clinic_patient(self, clinic_id: int, patient_id: int) -> int:
        query = (
            select(ClinicPatient)
            .where(ClinicPatient.clinic_id == clinic_id)
            .where(ClinicPatient.patient_id == patient_id)
        )
        link = self.session.exec(query).first()
        if link:
            return link.id
        link = ClinicPatient(clinic_id=clinic_id, patient_id=patient_id)
        try:
            with self.session.begin_nested():
                self.session.add(link)
        except IntegrityError:
            link = self.session.exec(query).first()
            if not link:
                raise PatientResolutionError(
                    "Clinic patient record could not be created",
                    context={"clinic_id": clinic_id, "patient_id": patient_id},
                )
        return link.id
