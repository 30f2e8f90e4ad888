"""
Applications Module

The scholarship application form: section-by-section saves, completeness
gating, registration order creation and the applicant dashboard.

API Endpoints:
- GET /user/application/save-section - Load the caller's application ({} if none)
- POST /user/application/save-section - Save one section
- POST /register - Create the registration fee order
- GET /user/dashboard - Application, payments and account
"""
