"""Domain models and errors.

The domain knows nothing about HTTP, SSE or the CLI: only routes, route
events and the ways a subscription can fail.
"""
