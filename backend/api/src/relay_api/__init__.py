"""FastAPI application for the Cielo checkout relay."""
