"""
Contracts (data models).

This folder defines the request/response shapes for external integrations.
Examples:
- Checkout request and hosted page session
- Payment status codes stored on transactions
- Plan identifiers shared by pricing, activation and templates

Both mock and real HTTP clients should use these contracts.
"""
