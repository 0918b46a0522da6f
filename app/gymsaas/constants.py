"""
Central constants for the GymSaaS application.
"""
from __future__ import annotations

# User roles
ROLE_SUPER_ADMIN = "SUPER_ADMIN"
ROLE_GYM_OWNER = "GYM_OWNER"
ROLE_MEMBER = "MEMBER"
ROLES = (ROLE_SUPER_ADMIN, ROLE_GYM_OWNER, ROLE_MEMBER)

# Billing models (term length)
BILLING_MONTHLY = "MONTHLY"
BILLING_YEARLY = "YEARLY"
BILLING_MODELS = (BILLING_MONTHLY, BILLING_YEARLY)

# Payments
PAYMENT_CASH = "CASH"
PAYMENT_BANK_TRANSFER = "BANK_TRANSFER"
PAYMENT_METHODS = (PAYMENT_CASH, PAYMENT_BANK_TRANSFER)
PAYMENT_METHOD_LABELS = {PAYMENT_CASH: "Cash", PAYMENT_BANK_TRANSFER: "Bank Transfer"}

SUBSCRIPTION_OWNER = "OWNER"
SUBSCRIPTION_MEMBER = "MEMBER"
SUBSCRIPTION_TYPES = (SUBSCRIPTION_OWNER, SUBSCRIPTION_MEMBER)

# Announcement audiences; ALL fans out to owners and members
AUDIENCE_ALL = "ALL"
AUDIENCES = (AUDIENCE_ALL, ROLE_GYM_OWNER, ROLE_MEMBER)
AUDIENCE_ROLES = {
    AUDIENCE_ALL: (ROLE_GYM_OWNER, ROLE_MEMBER),
    ROLE_GYM_OWNER: (ROLE_GYM_OWNER,),
    ROLE_MEMBER: (ROLE_MEMBER,),
}

# Limit-checked resources
RESOURCE_GYM = "gym"
RESOURCE_LOCATION = "location"
RESOURCE_MEMBER = "member"
RESOURCE_EQUIPMENT = "equipment"
PER_LOCATION_RESOURCES = frozenset({RESOURCE_MEMBER, RESOURCE_EQUIPMENT})

# Reminder schedule (days before end date)
FIRST_REMINDER_DAYS = 2
SECOND_REMINDER_DAYS = 1

DEFAULT_PAGE_LIMIT = 10
DASHBOARD_TABLE_ROWS = 25
CHART_MAX_MONTHS = 12
MIN_PASSWORD_LENGTH = 6
