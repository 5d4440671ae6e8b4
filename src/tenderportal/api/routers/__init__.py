"""API routers package."""

from . import admin, applications, auth, health, profile, tenders, uploads

__all__ = ['admin', 'applications', 'auth', 'health', 'profile', 'tenders', 'uploads']
