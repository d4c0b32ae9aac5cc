"""
Membership lookup service.

Keeps an in-memory, periodically refreshed map of customer email to their
MoonClerk subscription record.
"""
