"""Services for webhook reconciliation, checkout proxying and signing."""
