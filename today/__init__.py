"""today: refine your daily intention with an LLM."""

__version__ = "1.0.0"
