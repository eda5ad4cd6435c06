# Services package init
"""
RecipeShare Backend — Services Layer
======================================

What:  Business logic layer sitting between routes (HTTP) and database (persistence).
How:   Services accept a session plus plain values, apply business rules, and
       return response schemas or raise application exceptions.

Service Inventory:
    - AuthService: signup and login
    - RecipeService: CRUD, ratings and share links for user recipes
    - listing: filter → sort → paginate query building for the dashboard
    - MealDBClient: TheMealDB proxy with retries and a circuit breaker
    - FileService: recipe image validation, storage, and cleanup
"""
