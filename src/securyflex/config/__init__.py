"""
SecuryFlex Configuration Module

Provides centralized configuration management with:
- Environment-based settings loading
- Tunable privacy and tracking thresholds
- Secure handling of secrets
"""

from securyflex.config.settings import Settings, TrackingSettings, get_settings

__all__ = ["Settings", "TrackingSettings", "get_settings"]
