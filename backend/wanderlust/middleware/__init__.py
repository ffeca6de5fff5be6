# Middleware package init
"""
Wanderlust — Middleware Package
===============================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (registered in this order by main.create_app):
    Request → [Request ID] → [Access log] → [Method override] → [Session]
            → [Flash] → [Authentication] → [Locals] → [Error funnel] → Route

    1. Request ID: correlation id for every log line and the response header
    2. Access log: method, path, status and duration
    3. Method override: POST ?_method=PUT|DELETE reaches the real route
    4. Session: loads the signed-cookie session, saves it after the response
    5. Flash: per-request view of the session's flash queues
    6. Authentication: resolves the session's user into request.state.user
    7. Locals: template globals (current user, flash messages)
    8. Error funnel: last stop for every exception, renders the error page

    Responses unwind in reverse, so the session is saved after the error
    funnel has turned any failure into a response.
"""
