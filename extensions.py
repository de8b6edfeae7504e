"""Shared Flask extensions used by the scavenger hunt blueprints and services."""

from flask_sqlalchemy import SQLAlchemy

# SQLAlchemy instance initialized in app.create_app so blueprints/services can import `db`.
db = SQLAlchemy()
