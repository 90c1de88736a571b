from app.config import settings
from app.infrastructure.observability.logging import service_context


def test_service_context_tags_entries():
    add_service = service_context(settings.SERVICE_NAME)

    event = add_service(None, "info", {"event": "Notification dispatched"})

    assert event == {"event": "Notification dispatched", "service": "lostfound-notifications"}


def test_service_context_keeps_explicit_service():
    add_service = service_context("lostfound-notifications")

    event = add_service(None, "info", {"event": "Health check passed", "service": "worker"})

    assert event["service"] == "worker"
