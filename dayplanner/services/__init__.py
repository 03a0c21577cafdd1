# Services package init
"""
Day Planner Backend — Services Layer
=====================================

Service Inventory:
    - TokenService:    activation/access/refresh JWTs and cookie options
    - SessionCache:    redis-backed session store keyed by user id
    - MailService:     jinja2 templates rendered and sent over SMTP
    - SanityClient:    GROQ queries and patches against the Sanity HTTP API
    - UserService:     registration, activation, login, refresh, logout
    - ReminderService: due reminder dispatch for calendar events

Each module exposes a module-level singleton (e.g. `user_service`) used by
routes; tests patch those names on the importing module.
"""
