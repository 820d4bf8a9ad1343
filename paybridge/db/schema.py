SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS organizations (
    organization_id     TEXT PRIMARY KEY,
    name                TEXT,
    active_package      TEXT,
    subscription_start  TIMESTAMPTZ,
    subscription_end    TIMESTAMPTZ,
    subscription_type   TEXT,
    last_payment_amount NUMERIC(12, 2),
    last_payment_id     TEXT,
    payment_confirmed   BOOLEAN NOT NULL DEFAULT FALSE,
    updated_at          TIMESTAMPTZ NOT NULL DEFAULT now()
);

CREATE TABLE IF NOT EXISTS transactions (
    checkout_request_id  TEXT PRIMARY KEY,
    merchant_request_id  TEXT,
    organization_id      TEXT NOT NULL,
    amount               NUMERIC(12, 2) NOT NULL,
    phone                TEXT NOT NULL,
    package_name         TEXT NOT NULL,
    subscription_type    TEXT NOT NULL,
    status               TEXT NOT NULL DEFAULT 'PENDING',
    initiation_response  JSONB,
    callback_metadata    JSONB,
    mpesa_receipt_number TEXT,
    paid_amount          NUMERIC(12, 2),
    transaction_date     TIMESTAMPTZ,
    payer_phone          TEXT,
    result_code          INTEGER,
    result_desc          TEXT,
    last_checked_at      TIMESTAMPTZ,
    created_at           TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at           TIMESTAMPTZ NOT NULL DEFAULT now()
);

ALTER TABLE transactions ADD COLUMN IF NOT EXISTS last_checked_at TIMESTAMPTZ;

CREATE INDEX IF NOT EXISTS transactions_pending_idx
    ON transactions (created_at)
    WHERE status = 'PENDING';
"""
