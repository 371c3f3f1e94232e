"""Clinic application of the hospital management backend.

This package contains the models, access policy, serializers, services,
views and route registrations of the API: staff accounts and their
departments, the medical registers, the ledger and its receipts, and the
dashboard.
"""
