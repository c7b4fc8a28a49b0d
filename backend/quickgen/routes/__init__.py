# Routes package init
"""
QuickGen Backend: API Routes Package
====================================

Route Inventory:
    - ai.py:      POST /api/ai/*                       (six gated operations)
    - user.py:    GET  /api/user/get-user-creations
                  GET  /api/user/get-published-creations
    - health.py:  GET  /health

Routes stay thin: parse the request, call CreationService, wrap the result
in the response envelope. Failures are raised and turned into responses by
the handlers registered in main.py.
"""
