"""Login/logout log (the login audit trail)."""
