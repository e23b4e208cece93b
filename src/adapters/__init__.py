"""Adapters: httpx transport, OAuth, routing API and event-stream reader."""
