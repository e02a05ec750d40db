"""
CRM Hub: persistence layer.

The CRM entities themselves are plain records (see ``entities``) owned by the
data source adapter; the only locally persisted table is ``preferences``.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
