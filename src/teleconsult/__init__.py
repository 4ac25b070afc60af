"""
Teleconsult: consultation lifecycle and diagnosis orchestration backend

Drives patient intake sessions, AI-assisted preliminary diagnosis, simulated
payment and the durable consultation lifecycle for a telemedicine platform.
"""

__version__ = "0.1.0"
__author__ = "Teleconsult Team"
__description__ = "Consultation lifecycle and diagnosis orchestration backend"
