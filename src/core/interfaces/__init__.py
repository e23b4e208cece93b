"""Interfaces of the core.

Structural contracts (Protocol) implemented by the adapters, so the
subscription pipeline depends on abstractions and is testable with fakes.
"""
