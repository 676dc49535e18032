"""
Application services.

- review: scoring orchestration, history, settings, ledger access
- feedback: analyst labels and monitoring snapshot
- integrations: simulated alert dispatch
- batch: CSV import / export
- sessions: actor attribution
"""

from securepay.services.review import ReviewService, create_review_service

__all__ = ["ReviewService", "create_review_service"]
