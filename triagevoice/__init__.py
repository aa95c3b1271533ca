"""Voice-driven simulated patient for clinical triage training."""

__version__ = "0.1.0"
