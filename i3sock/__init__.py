"""i3sock - asyncio client for the i3 (and sway) IPC socket.

Frames are read from a single Unix socket shared by command replies and
subscribed events: replies are matched to the in-flight call by type while
events are forwarded to observers and listeners.
"""
