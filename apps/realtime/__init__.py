"""Realtime app package.

Per-client rooms on Redis pub/sub: the channel message format, the client
channel and the server-side publisher used to relay hold and payment events.
"""
