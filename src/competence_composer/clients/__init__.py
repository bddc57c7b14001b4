"""HTTP clients for external services."""

from competence_composer.clients.queue_client import QueueClient

__all__ = ["QueueClient"]
