# tests/conftest.py
"""Shared fixtures: a throwaway file-backed SQLite database per test."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("SWEEP_ENABLED", "false")

from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from crowd_balance.database import create_tables

T0 = datetime(2026, 3, 14, 18, 0, 0)
WINDOW = timedelta(minutes=60)


@pytest.fixture
def session_factory(tmp_path):
    # File-backed so separate sessions really are separate connections
    engine = create_engine(
        f"sqlite:///{tmp_path / 'crowd_test.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    create_tables(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()
