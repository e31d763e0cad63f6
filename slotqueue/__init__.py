"""Clinic slot allocation and appointment request queue."""
