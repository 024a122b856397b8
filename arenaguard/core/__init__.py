"""
ArenaGuard - Core
=================

Configuration, logging, errors, domain models and the document repository.
"""
