"""
Domain events emitted by negotiation state transitions.

Signals are sent synchronously inside the emitting transaction. Receivers
that raise abort the whole operation.

Keyword arguments sent with each signal:

- proposal_accepted: proposal, job, now
- proposal_declined: proposal, now
- proposal_countered: proposal, counter_proposal, now
- review_submitted: review, job, now
"""

from django.dispatch import Signal

proposal_accepted = Signal()
proposal_declined = Signal()
proposal_countered = Signal()
review_submitted = Signal()
