# Routes package init
"""
Wanderlust — Routes Package
===========================

Route Inventory:
    - listings.py:  /listings                        (index, show, new, edit, create, update, delete)
    - reviews.py:   /listings/{listing_id}/reviews   (create, delete)
    - users.py:     /signup  /login  /logout
    - health.py:    GET /health
    - fallback.py:  every other path → 404

Routes stay thin: guards (wanderlust/guards.py) check identity, ownership
and form shape; services do the work; the route flashes and redirects.
"""
