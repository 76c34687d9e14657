"""Database exception types."""

class DatabaseError(Exception):
    """Base class for database errors."""
    pass

class DatabaseSchemaError(DatabaseError):
    """Raised when schema loading or migration fails."""
    pass

class DatabaseNotInitializedError(DatabaseError):
    """Raised when the pool is used before init_db() has run."""
    pass
