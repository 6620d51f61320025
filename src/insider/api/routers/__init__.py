"""API routers package — one module per admin concern."""
