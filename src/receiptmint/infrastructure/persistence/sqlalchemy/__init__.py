"""SQLAlchemy persistence for mint records."""
