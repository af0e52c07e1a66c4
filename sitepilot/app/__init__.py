"""SitePilot FastAPI application."""
