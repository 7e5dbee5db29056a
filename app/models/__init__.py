"""
Delivery Planner
Model registry.

All models share the single Flask-SQLAlchemy instance defined here:

    from app.models import db
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
