"""QuizCapture: timed transcript segmentation feeding quiz question generation."""

__version__ = "0.1.0"
