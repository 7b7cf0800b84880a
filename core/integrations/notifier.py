"""Applicant notification dispatch."""

import logging
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Anything that can tell an applicant their application status changed."""

    def send_status_email(self, application_id: int) -> None: ...


class CeleryStatusNotifier:
    """Enqueues the status email on the notifications queue."""

    def send_status_email(self, application_id: int) -> None:
        # Imported lazily so the API process only needs the broker on first send
        from workers.tasks.emails import send_application_status_email

        result = send_application_status_email.delay(application_id)
        logger.info(
            "Queued status email",
            extra={"application_id": application_id, "task_id": result.id},
        )


_notifier: Optional[Notifier] = None


def get_notifier() -> Notifier:
    """Get or create the global notifier. Overridable as a FastAPI dependency."""
    global _notifier
    if _notifier is None:
        _notifier = CeleryStatusNotifier()
    return _notifier
