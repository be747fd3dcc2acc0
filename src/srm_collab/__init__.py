"""SRM Collab: service layer for a student social network."""

__version__ = "0.1.0"
