"""Video attendance package.

Watch-time tracking for instructional videos and the attendance records derived
from it. Organized by feature modules (tracking, attendance, reports, ...) with a
thin Flask controller layer over service/repository layers.
"""
