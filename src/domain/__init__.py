"""Domain package exposing the mix project data models."""
from .models import MIN_PROJECT_SECONDS, Keyframe, Project, Track

__all__ = [
    "MIN_PROJECT_SECONDS",
    "Keyframe",
    "Project",
    "Track",
]
