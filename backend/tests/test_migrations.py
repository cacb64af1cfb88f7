"""Tests that the Postgres migration covers the ORM schema."""

import importlib.util
import re
from pathlib import Path

from app.db.base import Base
from app.db import models  # noqa: F401

VERSIONS = Path(__file__).parent.parent / "alembic" / "versions"


def _load(path: Path):
    spec = importlib.util.spec_from_file_location(path.stem, path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_single_head_revision():
    revisions = [_load(path) for path in sorted(VERSIONS.glob("*.py"))]

    assert [r.revision for r in revisions] == ["001_initial"]
    assert revisions[0].down_revision is None


def test_initial_revision_creates_every_model_table():
    source = (VERSIONS / "001_initial_schema.py").read_text(encoding="utf-8")
    created = set(re.findall(r'op\.create_table\(\s*"(\w+)"', source))

    assert created == set(Base.metadata.tables)
