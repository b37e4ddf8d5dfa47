"""
Key-value store package for the catalog service.

This package contains:
- Store client interface with MongoDB and in-memory backends
- Record key layout helpers
- Maintenance routines for operators
"""
