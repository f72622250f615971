"""Database layer: schema, session management and entry repository queries."""
