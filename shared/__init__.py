"""Shared package for the Shelter Buddy application.

This package contains code used by both the backend Flask API and the client-side
upload tooling. It includes:

- Database models (models.py) - SQLAlchemy models for shelters, kennels, animals, walks and media
- Enums (enums.py) - Shared enumeration definitions for status values
- Schemas (schemas.py) - Pydantic request/response validation for media records
- Utility functions (utils.py) - Image resizing, thumbnails and hashing
- Cloud storage (cloud_storage.py) - Remote object storage client built on Apache Libcloud
"""
