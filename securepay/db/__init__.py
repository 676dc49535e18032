"""SQLAlchemy persistence for the `database` storage backend."""
