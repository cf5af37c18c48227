"""Frame Studio: pull sharp, distinct frames out of a video and restyle them with Gemini."""

__version__ = "0.1.0"
