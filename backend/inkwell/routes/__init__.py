"""
Inkwell Backend — API Routes Package
======================================

Route Inventory:
    - auth.py:    POST /api/users/register, POST /api/users/login
    - posts.py:   /api/posts CRUD and POST /api/posts/generate
    - health.py:  GET /health

Routes stay thin: parse the request, check the rate limit where one
applies, call a service, return its schema. Errors are raised as
InkwellError subclasses and rendered by the handlers in main.py.
"""
