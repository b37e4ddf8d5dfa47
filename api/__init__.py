"""
FastAPI REST API for the Shelf Catalog service.

This module provides:
- Public catalog browsing (books, collections, per-user listings)
- Account signup through the identity provider
- Bearer-token protected management of the caller's own records
"""
