"""Core of the routing API client.

Layout:
- `core.domain`: pure data (routes, events, errors).
- `core.interfaces`: structural contracts implemented by adapters.
- `core.services`: the event subscription pipeline.
"""

__version__ = "0.1.0"
