"""Event subscription pipeline: translation, event sources, fan-in."""
