"""
API Routes Package

This package contains FastAPI route handlers for the application.
Each module defines routes for a specific feature area:

- admin_auth.py: Admin console login, logout and current session
- admin_categories.py, admin_products.py, admin_discounts.py:
  Catalog and coupon management
- admin_orders.py, admin_users.py, admin_config.py:
  Order handling, user management and site settings
- catalog.py: Public catalog, search and site config
- discounts.py: Public coupon validation for the cart
- contact.py: Contact form
- customer.py: Customer accounts (register, login, profile)
- checkout.py: Order creation and Mercado Pago checkout
- subscriptions.py: Memberships billed through Mercado Pago
- webhooks.py: Mercado Pago notifications

Routes are registered in main.py using FastAPI's router system,
which allows for modular organization and shared route prefixes.
"""
