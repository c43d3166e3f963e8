"""
Real HTTP integration clients.

These clients are intended to communicate with real external systems, e.g.:
- Kashier payment pages (links, iframe hashes, webhook signatures)
- Anthropic Messages API

Important:
- Must implement the same interfaces as the mock clients
- Must return data shaped according to src/integrations/contracts/*

Switching:
The selection of mock vs real payment clients happens in src/api/endpoints/payments.py only.
"""
