"""Authorization for the CMS.

There is a single operator: the account whose email matches the configured
``ADMIN_EMAIL``. No roles table, no permission graph.
"""


def is_admin(email: str | None, admin_email: str | None) -> bool:
    """Check if an email belongs to the configured admin (case-insensitive)."""
    if not email or not admin_email:
        return False
    return email.strip().lower() == admin_email.strip().lower()
