"""Quick connectivity check for the Supabase tables the dashboard reads.

Run with `python scripts/check_backend.py` after setting SUPABASE_URL and
SUPABASE_KEY (or a .env file) to confirm every page's table is reachable and
its rows validate.
"""

from __future__ import annotations

from supabase import create_client

import crm_dashboard.bootstrap_env  # noqa: F401  loads .env
from crm_dashboard.config import load_settings
from crm_dashboard.data import models
from crm_dashboard.data.loader import fetch_rows
from crm_dashboard.errors import DataFetchError

TABLES = {
    "events": models.EventRow,
    "event_vendors": models.EventVendorLink,
    "vendor_inquiries": models.VendorInquiry,
    "vendor_applications": models.VendorApplication,
    "partners": models.Partner,
    "accounts": models.Account,
    "client_intakes": models.ClientIntake,
    "engagements": models.Engagement,
    "opportunities": models.Opportunity,
    "activities": models.Activity,
}


def main() -> None:
    settings = load_settings()
    client = create_client(settings.supabase_url, settings.supabase_key)

    failures = []
    for table, model in TABLES.items():
        try:
            rows = fetch_rows(client, table, model=model)
        except DataFetchError as exc:
            failures.append(table)
            print(f"FAIL {table}: {exc.message} (code={exc.code})")
            continue
        print(f"ok   {table}: {len(rows)} rows")

    if failures:
        raise SystemExit(f"Unreachable or invalid tables: {failures}")


if __name__ == "__main__":
    main()
