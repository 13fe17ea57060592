"""HTTP API package - FastAPI glue over the registry services."""
