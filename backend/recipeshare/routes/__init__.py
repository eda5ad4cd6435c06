"""
RecipeShare Backend — API Routes Package
==========================================

What:  HTTP route handlers. Each module owns one resource.

Route Inventory:
    - auth.py:      POST /api/signup, POST /api/login
    - recipes.py:   /api/recipes CRUD, listing, ratings, sharing, categories
    - external.py:  GET  /api/external-recipes/...  (cached TheMealDB proxy)
    - cache.py:     GET  /api/cache/stats, DELETE /api/cache
    - files.py:     GET  /api/files/{path}          (recipe images)
    - health.py:    GET  /health, GET /api/test

Routes stay thin: read the request, call a service, shape the response.
Errors are raised as application exceptions and rendered by main.py.
"""
