"""
Finboo - Follow-Up Resolution Engine

Turns interpreter output for free-form financial statements into complete,
ready-to-persist events, asking the user only for what is missing.

DESIGN PRINCIPLES:
1. AI interprets → engine completes → human confirms
2. Ask for one thing at a time
3. Never block the user: an unresolvable follow-up degrades to a retry
4. Every turn must be auditable
5. Collaborators are swappable
"""

__version__ = "1.0.0"
