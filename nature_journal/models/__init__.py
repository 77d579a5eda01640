"""ORM models of the document store."""
