"""
PawSafe - Offline-first hazard reporting core.

Local store, remote sync, crowd consensus and proximity alerts for
location-tagged hazard reports.
"""

__version__ = "0.1.0"
