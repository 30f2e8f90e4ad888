"""
Payments Module

Gateway callback verification and the payment audit trail.

API Endpoints:
- POST /payment/verify
"""
