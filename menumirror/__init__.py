"""
Menu Mirror — keep navigation menus mirrored into an external loop store.

The write path queues one sync job per menu per request, capturing a
pre-edit snapshot, and drains the queue at end-of-request through the
conflict detector. Status crosses request boundaries through TTL'd
signals that a polling client consumes.
"""

__version__ = "0.5.0"
