"""Accounts vertical: users, bearer tokens and role checks.

- SQLAlchemy User model with a password-free projection
- UserRepository on top of the generic async repository
- IdentityService (register/login/verify/profile) and UserAdminService
- FastAPI dependencies for the current principal and role gates
"""
