"""Projects: analysed codebases and their package filters."""

from .models import Project
from .registry import ProjectRegistry

__all__ = ["Project", "ProjectRegistry"]
