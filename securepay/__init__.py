"""
SecurePay Risk Engine - Fraud Review Decision Engine.

Architecture:
    securepay/
    ├── api/             # FastAPI routers (HTTP layer)
    ├── audit/           # Hash-chained audit ledger
    ├── db/              # SQLAlchemy engine and key-value slot model
    ├── engine/          # Risk scorer, rule engine, adaptive thresholds
    ├── middleware/      # Request context, error handling
    ├── schemas/         # Pydantic models (transactions, rules, results, logs)
    ├── services/        # Review workflow, feedback, simulated integrations
    └── storage/         # Key-value store contract + schema-validated loaders

Module Boundaries:
    - The engine is pure: every call reads only its explicit arguments
    - Storage is injected, never ambient
    - The audit ledger observes decisions, it never feeds back into scoring

Data Flow:
    Transaction → ThresholdResolver → RiskScorer (→ RuleEngine)
    → PredictionResult → AuditLedger

Version: 1.0.0
"""

__version__ = "1.0.0"
