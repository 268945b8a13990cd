"""Gym Attendance package.

This package is organized by feature modules (directory, attendance, members, ...)
with a thin Flask controller layer over service/repository layers.
"""
