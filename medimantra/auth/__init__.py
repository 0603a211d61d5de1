"""
Authentication module for the MediMantra platform.

This module provides authentication and authorization functionality including:
- Doctor and patient registration as a single transaction
- Normalization of doctor profile fields
- Role-specific login
- Email verification
- JWT access and refresh tokens
- Role-based access control
"""
