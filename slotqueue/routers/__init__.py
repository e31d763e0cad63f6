# Routers package
from . import appointment_requests_router
from . import appointments_router
from . import slots_router

__all__ = [
    "appointment_requests_router",
    "appointments_router",
    "slots_router",
]
