"""Real-time fan-out over WebSockets.

Clients join hospital or ambulance rooms; REST handlers and socket
actions publish events into those rooms (or to every client).  The
process-wide instances live in :mod:`operations.realtime.hub`.
"""
