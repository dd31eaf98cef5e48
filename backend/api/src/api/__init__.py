"""FastAPI application for the Stripe payment relay."""
