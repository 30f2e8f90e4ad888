"""
Admin Module

Back-office over users, applications and payments. Admin role required.
"""
