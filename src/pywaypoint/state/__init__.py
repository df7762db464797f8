"""State layer.

This package is the single source of truth for a signed-in user's presence:
the observable :class:`~pywaypoint.state.presence.PresenceCell` and the
sharing state machine in :mod:`pywaypoint.state.policy`.
"""
