"""
Desk Bridge

Bridges a messaging network session and a support desk, per tenant.
"""
