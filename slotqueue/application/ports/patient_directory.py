from typing import Optional, Protocol


class PatientDirectory(Protocol):
    def find_or_create_patient(self, name: str, phone: Optional[str], email: Optional[str]) -> int:
        """Idempotent on phone, then email."""
        ...

    def ensure_clinic_patient(self, clinic_id: int, patient_id: int) -> int:
        ...
