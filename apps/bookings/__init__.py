"""Bookings app package.

The client side of a car reservation: the booking draft and the server-granted
hold kept in a per-client state store, the hold coordinator reacting to the
realtime warning/expiry events, and the reservation service client.
"""
