"""API routers, mounted under /api/v1/tenants/{tenant_id} in main.py."""
