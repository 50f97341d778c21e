"""Feature apps: accounts (users, roles, sessions) and inventory."""
