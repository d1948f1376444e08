"""Configuration: environment settings and the coach catalogue."""

from coach_rag.config.coaches import ALL_DIET_COACHES, COACH_GROUPS, expand_coach_selection
from coach_rag.config.settings import Settings

__all__ = ["ALL_DIET_COACHES", "COACH_GROUPS", "Settings", "expand_coach_selection"]
