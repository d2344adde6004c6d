"""HTTP layer: FastAPI app, routes and dependencies."""
