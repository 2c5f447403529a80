# File: medialib/api/endpoints/__init__.py
"""
Endpoint modules, one per mount point.
"""
