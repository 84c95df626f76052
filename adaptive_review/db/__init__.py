"""Database layer: models, async session management and the unit of work."""
