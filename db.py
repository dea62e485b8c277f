# backend/db.py
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.dialects.mysql import BIGINT

db = SQLAlchemy()
migrate = Migrate()

# BIGINT UNSIGNED on MySQL; plain INTEGER on SQLite so rowid autoincrement works
BigIntId = BIGINT(unsigned=True).with_variant(db.Integer, "sqlite")
