# Routes package init
"""
Day Planner Backend — API Routes Package
=========================================

Route Inventory:
    - auth.py:       POST /api/v1/registration    (start registration, mail code)
                     POST /api/v1/activate-user   (create the account)
                     POST /api/v1/login           (issue cookies + session)
                     GET  /api/v1/logout          (drop session, clear cookies)
                     GET  /api/v1/refresh         (rotate both tokens)
                     GET  /api/v1/me              (current session user)
    - reminders.py:  GET  /api/v1/set-reminder    (dispatch due reminders)
    - health.py:     GET  /health                 (service health check)

Routes stay thin: read the request, call a service, shape the response.
"""
