"""Shared SQLAlchemy handle; model modules import ``db`` from here."""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
