"""HTTP layer: FastAPI routes, dependencies and authentication."""
