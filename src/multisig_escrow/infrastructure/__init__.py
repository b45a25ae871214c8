"""Infrastructure: persistence and ledger time."""
