"""Authorization for Newsdesk: Casbin role-based permission checks."""
