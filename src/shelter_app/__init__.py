"""Shelter client: media capture processing and the offline upload queue."""

__version__ = '0.1.0'
