"""StudyKit: turn generative-model output into playable exercise units."""

__version__ = "0.1.0"
