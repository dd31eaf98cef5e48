"""Shared domain models, services and utilities for the payment relay."""
