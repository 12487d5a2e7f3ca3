"""
Inkwell Backend — Services Layer
==================================

What:  Business rules between the routes (HTTP) and the stores (persistence).

Service Inventory:
    - TokenCodec:        issue/verify identity tokens
    - RateLimiter:       sliding-window attempt limiting per (identity, action)
    - Sanitizer:         entity escaping and rich-text filtering
    - ownership:         author-only mutation guard
    - PasswordHasher:    bcrypt in the threadpool
    - AuthService:       registration and login
    - PostService:       post CRUD and pagination
    - ContentGenerator:  AI drafting interface; GeminiService implements it
"""
