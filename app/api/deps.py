from fastapi import Request

from app.events.notifier import ConnectionManager


def get_notifier(request: Request) -> ConnectionManager:
    """The application's WebSocket manager, created with the application."""
    return request.app.state.notifier
