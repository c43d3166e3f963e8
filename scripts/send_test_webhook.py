#!/usr/bin/env python3
"""
Send a signed Kashier-style webhook to a running API.

Usage:
    python scripts/send_test_webhook.py ORDER_ID [--status SUCCESS] [--url http://localhost:8000]

The body is signed with KASHIER_TEST_SECRET_KEY when set, otherwise with the
mock gateway's secret (matches INTEGRATIONS_MODE=mock deployments).
"""

from __future__ import annotations

import argparse
import os
import sys
import uuid
from pathlib import Path

from dotenv import load_dotenv
load_dotenv()

sys.path.insert(0, str(Path(__file__).parent.parent))

import httpx

from src.integrations.clients.mocks.kashier import MOCK_SECRET_KEY
from src.integrations.clients.real_http.kashier import compute_webhook_signature


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("order_id", help="merchantOrderId of a pending transaction")
    parser.add_argument("--status", default="SUCCESS")
    parser.add_argument("--amount", default="79.00")
    parser.add_argument("--currency", default="EGP")
    parser.add_argument("--url", default=os.getenv("API_URL", "http://localhost:8000"))
    args = parser.parse_args()

    body = {
        "paymentStatus": args.status,
        "merchantOrderId": args.order_id,
        "transactionId": f"TX-{uuid.uuid4().hex[:12]}",
        "orderReference": f"REF-{uuid.uuid4().hex[:8]}",
        "amount": args.amount,
        "currency": args.currency,
        "maskedCard": "4111-XXXX-XXXX-1111",
        "cardBrand": "Visa",
    }
    secret = os.getenv("KASHIER_TEST_SECRET_KEY") or MOCK_SECRET_KEY
    body["signature"] = compute_webhook_signature(body, secret)
    body["mode"] = "test"

    headers = {}
    if os.getenv("API_KEY"):
        headers["X-API-KEY"] = os.environ["API_KEY"]

    try:
        response = httpx.post(f"{args.url.rstrip('/')}/api/payments/kashier/webhook", json=body, headers=headers, timeout=15)
    except httpx.HTTPError as e:
        print(f"❌ Request failed: {e}", file=sys.stderr)
        return 2

    print(f"{response.status_code} {response.text}")
    return 0 if response.is_success else 1


if __name__ == "__main__":
    sys.exit(main())
