"""
Demo data seeding.

``seed_if_empty`` checks the store for any company row and inserts the demo
portfolio (50 companies, 43 tasks each) only when none exist. The check is
made against the database every time, so several processes can call it
safely and a wiped database is re-seeded on the next call.

Call this from the ``flask seed-demo-data`` CLI command or at startup when
``AUTO_SEED_DEMO_DATA`` is enabled.
"""

import logging
from datetime import date

from audit_workflow.models import db
from audit_workflow.models.company import AUDIT_STAGES, AuditTask, Company

logger = logging.getLogger(__name__)

COMPANY_GROUPS = ["Group A", "Group B", "Group C", "Group D", "Group E"]

ORGANIZATION_TYPES = [
    "Limited Company",
    "Public Company",
    "Foundation",
    "Municipality",
    "Branch",
]

RESPONSIBLE_PARTNERS = [
    "Alex Johnson",
    "Sofia Berg",
    "Mikkel Hansen",
    "Emily Carter",
    "Luca Rossi",
    "Noah Patel",
]

SEED_TASK_DATE = date(2026, 2, 28)

SEED_STATUSES = ("Completed", "In progress", "Needs review", "Blocked")

_SEEDED_TASK_DEFINITIONS = {
    "1": {
        "task": "Invoice match",
        "description": "Match invoice to PO and goods receipt.",
        "evidence": "3-way match report",
        "robot_processed": True,
    },
    "1.1": {
        "task": "Vendor validation",
        "description": "Validate vendor master data completeness.",
        "evidence": "Master data exceptions list",
        "robot_processed": True,
    },
    "2": {
        "task": "Journal sampling",
        "description": "Select sample of manual journals for testing.",
        "evidence": "Sampling plan v1",
        "robot_processed": False,
    },
}

_VERBS = ["Review", "Assess", "Validate", "Inspect", "Reconcile", "Confirm", "Document", "Test"]
_AREAS = [
    "revenue recognition controls",
    "cash and bank reconciliations",
    "procurement approvals",
    "payroll change management",
    "access management logs",
    "intercompany eliminations",
    "inventory valuation support",
    "financial close checklist",
]
_OUTPUTS = [
    "control walkthrough notes",
    "evidence index",
    "exception tracker",
    "supporting schedule",
    "sample test sheet",
    "reconciliation pack",
]


def task_number_sequence() -> list[str]:
    """1, 1.1, 2 … 8, 8.1, 8.2, 9 … 40."""
    sequence = []
    for i in range(1, 41):
        sequence.append(str(i))
        if i == 1:
            sequence.append("1.1")
        if i == 8:
            sequence.extend(["8.1", "8.2"])
    return sequence


def _organization_number(index: int) -> str:
    return f"900{index:06d}"


def _default_companies() -> list[dict]:
    companies = [
        {
            "id": "acme-corp", "name": "Acme Corp", "company_group": "Group A",
            "organization_number": _organization_number(1),
            "organization_type": ORGANIZATION_TYPES[0],
            "responsible_partner": RESPONSIBLE_PARTNERS[0],
            "audit_stage": AUDIT_STAGES[0],
        },
        {
            "id": "globex-inc", "name": "Globex Inc", "company_group": "Group A",
            "organization_number": _organization_number(2),
            "organization_type": ORGANIZATION_TYPES[1],
            "responsible_partner": RESPONSIBLE_PARTNERS[1],
            "audit_stage": AUDIT_STAGES[1],
        },
        {
            "id": "initech-ltd", "name": "Initech Ltd", "company_group": "Group A",
            "organization_number": _organization_number(3),
            "organization_type": ORGANIZATION_TYPES[0],
            "responsible_partner": RESPONSIBLE_PARTNERS[2],
            "audit_stage": AUDIT_STAGES[2],
        },
    ]
    for i in range(4, 51):
        group_index = min((i - 1) // 10, len(COMPANY_GROUPS) - 1)
        companies.append({
            "id": f"company-{i:02d}",
            "name": f"Company {i:02d}",
            "company_group": COMPANY_GROUPS[group_index],
            "organization_number": _organization_number(i),
            "organization_type": ORGANIZATION_TYPES[(i - 1) % len(ORGANIZATION_TYPES)],
            "responsible_partner": RESPONSIBLE_PARTNERS[(i - 1) % len(RESPONSIBLE_PARTNERS)],
            "audit_stage": AUDIT_STAGES[(i - 1) % len(AUDIT_STAGES)],
        })
    return companies


def _task_definition(task_number: str, index: int) -> dict:
    if task_number in _SEEDED_TASK_DEFINITIONS:
        return _SEEDED_TASK_DEFINITIONS[task_number]
    verb = _VERBS[index % len(_VERBS)]
    area = _AREAS[index % len(_AREAS)]
    return {
        "task": f"{verb} procedure {task_number}",
        "description": f"{verb} {area} and document findings in the audit file.",
        "evidence": _OUTPUTS[index % len(_OUTPUTS)],
        "robot_processed": index % 3 != 0,
    }


def _seed_tasks(company_id: str, variant: int) -> list[AuditTask]:
    tasks = []
    for index, task_number in enumerate(task_number_sequence()):
        definition = _task_definition(task_number, index)
        tasks.append(AuditTask(
            id=f"{company_id}-task-{task_number.replace('.', '-')}",
            company_id=company_id,
            task_number=task_number,
            task=definition["task"],
            description=definition["description"],
            robot_processed=definition["robot_processed"],
            status=SEED_STATUSES[(variant + index) % len(SEED_STATUSES)],
            comment="",
            evidence=definition["evidence"],
            last_updated=SEED_TASK_DATE,
        ))
    return tasks


def seed_if_empty() -> int:
    """
    Insert the demo portfolio when the company table is empty.
    Safe to run multiple times — returns 0 when any company already exists.

    Returns:
        Number of companies created.
    """
    if db.session.query(Company.id).first() is not None:
        return 0

    companies = _default_companies()
    for variant, data in enumerate(companies):
        db.session.add(Company(**data))
        db.session.add_all(_seed_tasks(data["id"], variant))
    db.session.commit()

    logger.info("Seeded %d demo companies", len(companies))
    return len(companies)
