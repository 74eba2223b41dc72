"""
SecuryFlex - Privacy-Compliant Guard Location Engine

This package provides the backend location services for the SecuryFlex
security staffing platform: consent-gated guard location tracking that
publishes proximity to work locations instead of coordinates.

PRIVACY: Raw guard coordinates never leave the proximity classifier.
Only rounded, categorical proximity data is persisted or published.
"""

__version__ = "0.1.0"
__author__ = "SecuryFlex Engineering Team"
