"""
psgc_shared — shared settings, code grammar, models, and storage helpers
for the psgc platform.

Usage:
    from psgc_shared.config import settings
    from psgc_shared.codes import normalize, classify, parent_code, Level
    from psgc_shared.db import get_duckdb_connection
    from psgc_shared.models.geography import Region, Province, City, Municipality, Barangay
    from psgc_shared.models.standards import load_standards
"""

__version__ = "1.0.0"
