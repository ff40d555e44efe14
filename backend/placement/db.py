from __future__ import annotations
from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import sessionmaker, declarative_base
from .settings import settings


DATABASE_URL = settings.database_url or "sqlite:///./placement.db"

_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=_connect_args, future=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
Base = declarative_base()


def get_db():
	db = SessionLocal()
	try:
		yield db
	finally:
		db.close()


# Best-effort lightweight migrations for development (SQLite-friendly)
def ensure_schema(bind=None) -> None:
	bind = bind or engine
	try:
		inspector = inspect(bind)
		tables = set(inspector.get_table_names())
	except Exception:
		return
	if "assessments" in tables:
		cols = {c["name"] for c in inspector.get_columns("assessments")}
		with bind.begin() as conn:
			if "completed_at" not in cols:
				conn.exec_driver_sql("ALTER TABLE assessments ADD COLUMN completed_at DATETIME")
	if "assessment_items" in tables:
		cols = {c["name"] for c in inspector.get_columns("assessment_items")}
		with bind.begin() as conn:
			if "source" not in cols:
				conn.exec_driver_sql("ALTER TABLE assessment_items ADD COLUMN source VARCHAR(16) DEFAULT 'bank' NOT NULL")
			if "answered_at" not in cols:
				conn.exec_driver_sql("ALTER TABLE assessment_items ADD COLUMN answered_at DATETIME")
