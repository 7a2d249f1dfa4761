"""Custom metrics for the Book Network server."""

import logfire

loan_events = logfire.metric_counter(
    "book_network.loans.events", description="Loan transitions (borrow/return/approve)"
)

account_events = logfire.metric_counter(
    "book_network.accounts.events", description="Account lifecycle events"
)


def record_loan_event(event_type: str) -> None:
    """Record a loan transition."""
    loan_events.add(1, {"event_type": event_type})


def record_account_event(event_type: str) -> None:
    """Record a registration, activation or login."""
    account_events.add(1, {"event_type": event_type})
