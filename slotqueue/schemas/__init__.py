# Schemas package (re-export feature modules for stable imports)
from .appointments.appointment import *
from .appointment_requests.appointment_request import *
from .slots.slot import *
