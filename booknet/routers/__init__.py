"""FastAPI routers for the booknet API."""
