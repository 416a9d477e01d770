"""Practice history analysis: profiles, session health and recommendations."""

__version__ = "0.1.0"
