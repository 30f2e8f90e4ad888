"""
Auth Module

Email-OTP signup and credentials login.

API Endpoints:
- POST /auth/signup
- POST /auth/verify-otp
- POST /auth/login

Background Jobs (via APScheduler):
- auth_purge_pending_users: Runs every minute, removes pending signups past retention
"""

from .jobs import register_auth_jobs
from .router import router

__all__ = ["router", "register_auth_jobs"]
