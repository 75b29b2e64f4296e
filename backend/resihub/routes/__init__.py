# Routes package init
"""
ResiHub Backend — API Routes Package
======================================

What:  HTTP route handlers that accept requests and return responses.
How:   Each route module handles one resource and delegates to a service.

Route Inventory:
    - auth.py:      POST /api/auth/login
    - services.py:  /api/service CRUD, nearby search and reviews
    - health.py:    GET /  and  GET /api/health

Routes stay thin: they extract data from the request, call a service and
return its result. Errors are raised, never formatted here; the global
handlers in main.py turn them into responses.
"""
