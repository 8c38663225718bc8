"""Payroll configuration governance and draft payroll generation."""

__version__ = "0.1.0"
