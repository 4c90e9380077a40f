"""ORM records for the persistence layer."""
