# Models package (re-export feature modules for stable imports)
from .scheduling.time_slot import TimeSlot
from .scheduling.appointment import Appointment
from .scheduling.appointment_request import AppointmentRequest
from .patients.patient import Patient
from .patients.clinic_patient import ClinicPatient

__all__ = [
    "TimeSlot",
    "Appointment",
    "AppointmentRequest",
    "Patient",
    "ClinicPatient",
]
