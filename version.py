"""
Version information for the Talent Match service.

This file is the single source of truth for version numbers.
The match service imports from here.
"""

__version__ = "0.3.0"
__version_info__ = (0, 3, 0)

# Build metadata (set by CI/CD or manually)
BUILD_DATE = "2026-10-17"
