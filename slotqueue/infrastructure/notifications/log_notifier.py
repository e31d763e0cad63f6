import logging
from typing import Optional

from ...application.ports.notifier import Notifier


class LogNotifier(Notifier):
    """Records patient-facing notifications in the application log."""

    def __init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def request_approved(self, request, appointment) -> None:
        self._logger.info(
            f"NOTIFY approved: request={request.id} patient={request.patient_name} "
            f"appointment={appointment.id} at {appointment.appointment_datetime:%Y-%m-%d %H:%M}"
        )

    def request_rejected(self, request, reason: str) -> None:
        self._logger.info(f"NOTIFY rejected: request={request.id} patient={request.patient_name} reason={reason}")

    def appointment_cancelled(self, appointment, reason: Optional[str] = None) -> None:
        self._logger.info(f"NOTIFY cancelled: appointment={appointment.id} reason={reason or '-'}")
