# File: medialib/api/__init__.py
"""
API package for the media library: endpoints, dependencies and routing.
"""
