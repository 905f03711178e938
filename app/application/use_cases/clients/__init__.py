"""Client use cases."""

from app.application.use_cases.clients.client_operations import ClientService

__all__ = ["ClientService"]
