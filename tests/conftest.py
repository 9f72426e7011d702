"""Shared fixtures: a temporary store seeded with a small organisation.

Departments::

    Engineering
    └── Platform
        └── SRE
    Finance
    Sales
    HR

Task "Cost dashboards" is shared between Sam (SRE) and Mitch (Finance), so
Engineering's hierarchy can see Finance and Finance can see SRE.
"""

import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import partial
from pathlib import Path

import pytest

from task_insights.core import directory as directory_mod
from task_insights.core import tasks as tasks_mod
from task_insights.core.service import ReportService
from task_insights.db.engine import init_db
from task_insights.db.models import BLOCKED, COMPLETED, IN_PROGRESS
from task_insights.db.source import open_sqlite_source

NOW = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


@dataclass
class Org:
    db_path: Path
    depts: dict
    projects: dict
    tasks: dict


@pytest.fixture
def db_path():
    with tempfile.TemporaryDirectory() as tmp:
        yield Path(tmp) / "test.db"


@pytest.fixture
def db(db_path):
    conn = init_db(db_path)
    yield conn
    conn.close()


@pytest.fixture
def org(db, db_path):
    eng = directory_mod.create_department(db, "Engineering")
    platform = directory_mod.create_department(db, "Platform", eng.id)
    sre = directory_mod.create_department(db, "SRE", platform.id)
    finance = directory_mod.create_department(db, "Finance")
    sales = directory_mod.create_department(db, "Sales")
    hr = directory_mod.create_department(db, "HR")

    directory_mod.create_user(db, "joel", "Joel", "Ong", eng.id)
    directory_mod.create_user(db, "pat", "Pat", "Kim", platform.id)
    directory_mod.create_user(db, "sam", "Sam", "Wu", sre.id)
    directory_mod.create_user(db, "mitch", "Mitch", "Tan", finance.id)
    directory_mod.create_user(db, "sara", "Sara", "Lim", sales.id)
    directory_mod.create_user(db, "hana", "Hana", "Goh", hr.id)

    infra = directory_mod.create_project(db, "Infra Revamp")
    budget = directory_mod.create_project(db, "Budget 2025")
    crm = directory_mod.create_project(db, "Sales CRM")
    legacy = directory_mod.create_project(db, "Legacy")

    t1 = tasks_mod.create_task(
        db, "Provision clusters", infra.id, creator_id="joel", logged_time=3600,
        deadline="2025-01-10T00:00:00+00:00", created_at="2025-01-01T00:00:00+00:00",
    )
    tasks_mod.update_task_status(db, t1.id, COMPLETED, at="2025-01-09T00:00:00+00:00")
    tasks_mod.assign_task(db, t1.id, "pat", "joel")

    t2 = tasks_mod.create_task(
        db, "Cost dashboards", infra.id, creator_id="joel", status=IN_PROGRESS,
        logged_time=1800, deadline="2025-01-14T09:00:00+00:00",
    )
    tasks_mod.assign_task(db, t2.id, "sam", "joel")
    tasks_mod.assign_task(db, t2.id, "mitch", "joel")

    t3 = tasks_mod.create_task(
        db, "Quarterly budget", budget.id, creator_id="mitch", logged_time=7200,
        deadline="2025-01-12T00:00:00+00:00", created_at="2025-01-02T00:00:00+00:00",
    )
    tasks_mod.update_task_status(db, t3.id, COMPLETED, at="2025-01-13T12:00:00+00:00")
    tasks_mod.assign_task(db, t3.id, "mitch", "mitch")

    t4 = tasks_mod.create_task(db, "CRM migration", crm.id, creator_id="sara", status=BLOCKED)
    tasks_mod.assign_task(db, t4.id, "sara", "sara")

    t5 = tasks_mod.create_task(db, "Legacy cleanup", legacy.id, creator_id="joel")
    tasks_mod.assign_task(db, t5.id, "joel", "joel")
    directory_mod.archive_project(db, legacy.id)

    t6 = tasks_mod.create_task(
        db, "Write runbook", infra.id, creator_id="pat", logged_time=600,
        deadline="2025-01-20T00:00:00+00:00", parent_task_id=t1.id,
    )
    tasks_mod.assign_task(db, t6.id, "pat", "pat")

    return Org(
        db_path=db_path,
        depts={
            "eng": eng.id, "platform": platform.id, "sre": sre.id,
            "finance": finance.id, "sales": sales.id, "hr": hr.id,
        },
        projects={"infra": infra.id, "budget": budget.id, "crm": crm.id, "legacy": legacy.id},
        tasks={"t1": t1.id, "t2": t2.id, "t3": t3.id, "t4": t4.id, "t5": t5.id, "t6": t6.id},
    )


@pytest.fixture
def service(org):
    return ReportService(
        partial(open_sqlite_source, org.db_path),
        tz=timezone.utc,
        clock=lambda: NOW,
    )
