"""
Services module for business logic separation.

This module contains the service layer (URL creation, redirection, stats)
and the pure helpers it builds on (short code generation, geo lookup),
keeping them separate from API endpoints and database models.
"""
