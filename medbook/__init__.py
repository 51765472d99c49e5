"""MedBook - slot availability and booking engine for a medical appointment platform."""

__version__ = "0.1.0"
