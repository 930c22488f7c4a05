"""
psgc_api — read-only REST API over the PSGC geography store.

Start with:
    uvicorn psgc_api.app:app --port 3000
"""

__version__ = "1.0.0"
