from typing import Optional, Protocol


class Notifier(Protocol):
    def request_approved(self, request, appointment) -> None:
        ...

    def request_rejected(self, request, reason: str) -> None:
        ...

    def appointment_cancelled(self, appointment, reason: Optional[str] = None) -> None:
        ...
