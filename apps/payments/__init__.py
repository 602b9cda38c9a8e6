"""Payments app package.

GCash down payments through PayMongo: the client-side orchestrator and
confirmation listener, and the backend endpoints that create checkouts and
relay webhook verdicts to the client's realtime room.
"""
