"""Access policy, accounts and sessions."""
