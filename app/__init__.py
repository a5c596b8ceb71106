"""
Clinic Appointment Backend

FastAPI service for booking clinic appointments: signed session tokens,
role and ownership checks, half-day doctor availability and the
appointment lifecycle.
"""

__version__ = "1.0.0"
