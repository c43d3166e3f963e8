"""
Mock integration clients.

These clients return fake (but realistic) responses without calling any external API.
They are used when:
- Kashier merchant credentials are not configured
- We want to test the checkout and webhook flow end-to-end on a laptop

Important:
- Mock clients must follow the SAME interface as real HTTP clients.
- Mock clients should return data shaped according to src/integrations/contracts/*

Switching to real:
Set INTEGRATIONS_MODE=real (or configure KASHIER_MERCHANT_ID) to use
clients/real_http/* implementations instead.
"""
