"""
Audit Workflow Tracker
Company domain model.

Models:
    - Company:   audited entity with stage, risk checklist, due date and signing document
    - AuditTask: checklist row owned by exactly one company

Lifecycle states:
    Company.audit_stage:  First time auditing → First time review
                          → Second time review → Partner review → Signing
    AuditTask.status:     Completed | Needs review | In progress | Blocked (free movement)
"""

from audit_workflow.models import db


# ── Constants ────────────────────────────────────────────────────────────────

REVIEW_STAGES = (
    "First time auditing",
    "First time review",
    "Second time review",
    "Partner review",
)

SIGNING_STAGE = "Signing"

AUDIT_STAGES = REVIEW_STAGES + (SIGNING_STAGE,)

FIRST_STAGE = REVIEW_STAGES[0]
PARTNER_REVIEW_STAGE = REVIEW_STAGES[-1]

TASK_STATUSES = {"Completed", "Needs review", "In progress", "Blocked"}

RISK_CHECKLIST_FIELDS = {
    "overall_risk_assessed": "Overall risk assessed",
    "fraud_risk_documented": "Fraud risk documented",
    "controls_tested": "Key controls tested",
    "partner_review_ready": "Ready for partner review",
}


# ── Stage helpers ────────────────────────────────────────────────────────────


def stage_index(stage):
    """Position of *stage* in the review order, or -1 when unrecognised."""
    try:
        return REVIEW_STAGES.index(stage)
    except ValueError:
        return -1


def next_review_stage(stage):
    """Return the stage after *stage*, or None at the end / for unknown values.

    Only walks the review stages; "Signing" is reached through the dedicated
    send-to-signing transition.
    """
    index = stage_index(stage)
    if index == -1 or index >= len(REVIEW_STAGES) - 1:
        return None
    return REVIEW_STAGES[index + 1]


def task_number_key(task_number):
    """Sort key for dotted task numbers: "2" < "8" < "8.1" < "8.2" < "10".

    Each segment is compared as an integer; non-numeric and missing segments
    count as 0, so "8" and "8.0" compare equal.
    """
    parts = []
    for segment in str(task_number or "").split("."):
        try:
            parts.append(int(segment))
        except ValueError:
            parts.append(0)
    while len(parts) > 1 and parts[-1] == 0:
        parts.pop()
    return tuple(parts)


# ═════════════════════════════════════════════════════════════════════════════
# Company
# ═════════════════════════════════════════════════════════════════════════════


class Company(db.Model):
    """Audited company. One row per engagement; id is a stable slug."""

    __tablename__ = "audit_companies"

    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(200), nullable=False, index=True)
    company_group = db.Column(db.String(100), default="")
    organization_number = db.Column(db.String(30), default="")
    organization_type = db.Column(db.String(100), default="")
    responsible_partner = db.Column(db.String(150), default="")
    audit_stage = db.Column(
        db.String(40), nullable=False, default=FIRST_STAGE,
        comment="First time auditing | First time review | Second time review | Partner review | Signing",
    )

    # Risk checklist: NULL means unanswered
    overall_risk_assessed = db.Column(db.Boolean, nullable=True)
    fraud_risk_documented = db.Column(db.Boolean, nullable=True)
    controls_tested = db.Column(db.Boolean, nullable=True)
    partner_review_ready = db.Column(db.Boolean, nullable=True)

    task_due_date = db.Column(db.Date, nullable=True)
    signing_document = db.Column(db.Text, nullable=True)

    tasks = db.relationship(
        "AuditTask", backref="company", lazy="dynamic",
        cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "group": self.company_group,
            "organization_number": self.organization_number,
            "organization_type": self.organization_type,
            "responsible_partner": self.responsible_partner,
            "audit_stage": self.audit_stage or FIRST_STAGE,
            "overall_risk_assessed": self.overall_risk_assessed,
            "fraud_risk_documented": self.fraud_risk_documented,
            "controls_tested": self.controls_tested,
            "partner_review_ready": self.partner_review_ready,
            "task_due_date": self.task_due_date.isoformat() if self.task_due_date else None,
            "signing_document": self.signing_document,
        }

    def __repr__(self):
        return f"<Company {self.id}: {self.audit_stage}>"


# ═════════════════════════════════════════════════════════════════════════════
# AuditTask
# ═════════════════════════════════════════════════════════════════════════════


class AuditTask(db.Model):
    """
    Checklist row for one company.

    ``robot_processed`` is a seed fact and never changes. ``last_updated`` is
    stamped by the service on every accepted mutation.
    """

    __tablename__ = "audit_tasks"
    __table_args__ = (
        db.Index("idx_audit_task_company", "company_id", "task_number"),
    )

    id = db.Column(db.String(100), primary_key=True)
    company_id = db.Column(
        db.String(64),
        db.ForeignKey("audit_companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    task_number = db.Column(db.String(20), nullable=False)
    task = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, default="")
    robot_processed = db.Column(db.Boolean, nullable=False, default=False)
    status = db.Column(db.String(20), nullable=False, default="In progress")
    comment = db.Column(db.Text, default="")
    evidence = db.Column(db.Text, default="")
    last_updated = db.Column(db.Date, nullable=True)

    def to_dict(self):
        return {
            "id": self.id,
            "company_id": self.company_id,
            "task_number": self.task_number,
            "task": self.task,
            "description": self.description,
            "robot_processed": bool(self.robot_processed),
            "status": self.status,
            "comment": self.comment or "",
            "evidence": self.evidence or "",
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
        }

    def __repr__(self):
        return f"<AuditTask {self.company_id}/{self.task_number}: {self.status}>"
