"""Bulk CSV import pipeline for the CRM."""

__version__ = "1.0.0"
