"""
Backend package for the agency site.

This package provides a FastAPI application serving the admin panel and the
public site, on top of document store, metadata overlay and file storage
abstractions.
"""
