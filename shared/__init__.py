"""
Shared Kernel

Base classes and utilities shared by the booking and payment contexts:
domain primitives, the message bus and unit of work, session storage.
"""
