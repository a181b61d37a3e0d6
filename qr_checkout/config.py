"""Runtime configuration defaults for the API client, polling and persistence."""

from __future__ import annotations

import os
from decimal import Decimal

API_BASE_URL = os.environ.get("QR_CHECKOUT_API_URL", "http://localhost:8080").rstrip("/")
API_TOKEN = os.environ.get("QR_CHECKOUT_API_TOKEN", "").strip() or None
API_TIMEOUT_SECONDS = 10.0

# 60 x 5s gives a five minute ceiling on an abandoned payment screen.
POLL_INTERVAL_SECONDS = 5.0
MAX_POLL_ATTEMPTS = 60

SUCCESS_DISPLAY_DELAY_SECONDS = 1.5
REDIRECT_DELAY_SECONDS = 3.0

DELIVERY_FEE = Decimal("5.00")

DB_PATH = os.environ.get("QR_CHECKOUT_DB_PATH", "data/checkout.db")
DEBUG_LOG_PATH = os.environ.get("QR_CHECKOUT_LOG_PATH", "/tmp/qr-checkout.log")

# Used to build a VietQR image when the backend sends bank details without a QR payload.
VIETQR_BANK_ID = os.environ.get("QR_CHECKOUT_BANK_ID", "MB")
VIETQR_ACCOUNT_NO = os.environ.get("QR_CHECKOUT_ACCOUNT_NO", "0909630904")
VIETQR_ACCOUNT_NAME = os.environ.get("QR_CHECKOUT_ACCOUNT_NAME", "NGUYEN PHUC DIEN")
VIETQR_TEMPLATE = "compact2"
