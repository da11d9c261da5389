"""Import all models through registry to ensure proper initialization order."""
from assessment_platform.models.registry import *  # noqa: F401, F403
