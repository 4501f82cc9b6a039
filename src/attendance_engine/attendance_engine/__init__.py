"""Attendance engine package.

Organized by feature modules (attendance, finalization, corrections, shifts, ...)
with a thin Flask controller layer over service/repository layers.
"""
