"""
Las Delicias del Campo Storefront Package

This package contains the JSON API behind the Las Delicias del Campo
online store (dried fruits, nuts and seeds) and its admin console.
The package is organized as follows:

- config.py: Application configuration and environment settings
- database.py: Database connection and session management
- dependencies.py: FastAPI dependencies resolving admin/customer sessions
- limiter.py: In-memory sliding-window rate limiting
- main.py: FastAPI application entry point, middleware and error handlers
- models.py: SQLAlchemy ORM database models

Subpackages:
- routes/: API route handlers (admin, catalog, customer, checkout, payments)
- services/: Business logic (sessions, catalog queries, site config,
  payment gateway, discounts, orders, email, response shaping)
- utils/: Utility functions (text processing, validators)
"""
