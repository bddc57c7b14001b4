"""Generation attempt history."""

from competence_composer.history.models import GenerationRecord
from competence_composer.history.store import GenerationHistory

__all__ = ["GenerationHistory", "GenerationRecord"]
