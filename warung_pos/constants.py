from __future__ import annotations

# APP ROLES (match backend values)
ROLE_SUPERUSER = "SUPERUSER"
ROLE_OWNER     = "OWNER"
ROLE_ADMIN     = "ADMIN"
ROLE_CASHIER   = "CASHIER"
ROLE_CHEF      = "CHEF"
ROLE_WAITER    = "WAITER"

ROLES = [ROLE_SUPERUSER, ROLE_OWNER, ROLE_ADMIN, ROLE_CASHIER, ROLE_CHEF, ROLE_WAITER]

# ── Permission keys ───────────────────────────────────────────────────────────
P_CREATE_ORDER     = "can_create_order"
P_EDIT_ITEMS       = "can_edit_items"
P_UPDATE_STATUS    = "can_update_any_status"
P_BILL             = "can_bill"
P_VOID_BILLING     = "can_void_billing"
P_RECONCILE        = "can_submit_reconciliation"
P_UNLOCK_RECON     = "can_unlock_reconciliation"
P_ADJUST_RECON     = "can_adjust_reconciliation"
P_EXPORT           = "can_export_data"

ALL_PERMISSION_KEYS: list[str] = [
    P_CREATE_ORDER,
    P_EDIT_ITEMS,
    P_UPDATE_STATUS,
    P_BILL,
    P_VOID_BILLING,
    P_RECONCILE,
    P_UNLOCK_RECON,
    P_ADJUST_RECON,
    P_EXPORT,
]

# Human-readable labels for CLI output
PERMISSION_LABELS: dict[str, str] = {
    P_CREATE_ORDER:  "Create orders",
    P_EDIT_ITEMS:    "Edit items on any order",
    P_UPDATE_STATUS: "Set any order status",
    P_BILL:          "Bill orders",
    P_VOID_BILLING:  "Void billings",
    P_RECONCILE:     "Submit daily cash",
    P_UNLOCK_RECON:  "Unlock daily cash",
    P_ADJUST_RECON:  "Adjust daily cash",
    P_EXPORT:        "Export reports",
}

# Waiters edit and move their *own* orders; that check lives in the services.
DEFAULT_ROLE_PERMISSIONS: dict[str, set[str]] = {
    ROLE_ADMIN: set(ALL_PERMISSION_KEYS),
    ROLE_CASHIER: {
        P_CREATE_ORDER, P_EDIT_ITEMS, P_UPDATE_STATUS,
        P_BILL, P_VOID_BILLING, P_RECONCILE, P_EXPORT,
    },
    ROLE_WAITER: {P_CREATE_ORDER},
    ROLE_CHEF: set(),
    ROLE_OWNER: {P_EXPORT},
    ROLE_SUPERUSER: {P_EXPORT},
}

# ── Billing status ────────────────────────────────────────────────────────────
BILLING_PAID = "PAID"
BILLING_VOID = "VOID"

# ── Payment types ─────────────────────────────────────────────────────────────
PAY_CASH          = "CASH"
PAY_QRIS          = "QRIS"
PAY_BANK_TRANSFER = "BANK_TRANSFER"
PAY_GOFOOD        = "GOFOOD"
PAY_GRABFOOD      = "GRABFOOD"
PAY_SHOPEEFOOD    = "SHOPEEFOOD"
PAY_KASBON        = "KASBON"
PAY_FOC           = "FOC"

# Order shown in the payment selector
PAYMENT_TYPES: list[str] = [
    PAY_CASH, PAY_QRIS, PAY_BANK_TRANSFER,
    PAY_GOFOOD, PAY_GRABFOOD, PAY_SHOPEEFOOD, PAY_KASBON, PAY_FOC,
]

PAYMENT_LABELS: dict[str, str] = {
    PAY_CASH:          "Cash",
    PAY_QRIS:          "QRIS",
    PAY_BANK_TRANSFER: "Bank Transfer",
    PAY_GOFOOD:        "GoFood",
    PAY_GRABFOOD:      "GrabFood",
    PAY_SHOPEEFOOD:    "ShopeeFood",
    PAY_KASBON:        "Kasbon",
    PAY_FOC:           "FOC",
}

# Operator may pick these when the order type does not force one
OPEN_PAYMENT_TYPES: list[str] = [PAY_CASH, PAY_QRIS, PAY_BANK_TRANSFER]

# "Penjualan Debit" block of the daily report
DEBIT_PAYMENT_TYPES: list[str] = [
    PAY_QRIS, PAY_BANK_TRANSFER, PAY_GOFOOD, PAY_GRABFOOD, PAY_SHOPEEFOOD, PAY_KASBON,
]

# Payment types with a free-text remark on the daily report
REMARKABLE_PAYMENT_TYPES: list[str] = [PAY_QRIS, PAY_BANK_TRANSFER, PAY_CASH]

# ── Messages ──────────────────────────────────────────────────────────────────
ERROR_NO_TOKEN          = "No auth token found. Please log in."
ERROR_SESSION_EXPIRED   = "Unauthorized: Session expired or invalid token."
ERROR_INVALID_LOGIN     = "Invalid username or password"
ERROR_REPORT_LOCKED     = "This report is locked and cannot be submitted."
ERROR_DEPOSIT_REQUIRED  = "Please ensure date, outlet ID, and cash deposit are provided."

PLACEHOLDER_FOOD     = "Unknown"
PLACEHOLDER_CATEGORY = "Other"
PLACEHOLDER_OPTION   = "Unnamed Option"
PLACEHOLDER_WAITER   = "-"
