"""
Services layer.

Business rules for users, bands, memberships, subscriptions and lyrics:
- take a Session plus plain values (IDs, payload dicts)
- raise ValueError / LookupError / PermissionError; routers map them to HTTP
- never import FastAPI request or response objects
"""
