"""Learning-time tracking exports."""

from .models import LearningSession

__all__ = ["LearningSession"]
