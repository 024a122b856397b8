"""
ArenaGuard
==========

Community access control and moderation for tournament communities:
layered role/channel permissions, invitation tokens, support tickets,
an audited moderation engine and mention targeting.
"""

__version__ = "1.0.0"
