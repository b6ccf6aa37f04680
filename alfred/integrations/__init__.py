"""Google API integrations for Alfred.

This package contains modules for integrating with:
- Google Places API (provider search when the local directory is not enough)
"""

from __future__ import annotations
