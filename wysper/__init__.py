"""Wysper - bounded conversation memory and a resilient Gemini request pipeline."""

__version__ = "0.1.0"
