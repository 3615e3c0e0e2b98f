"""
Audit Workflow Tracker
Blueprint registry.

    audit_bp          /api/v1/audit   companies, workspace, lock, tasks, stages, checklist
    collaboration_bp  /api/v1/audit   discussions, presence, notifications, mention directory
    jobs_bp           /api/v1/audit   housekeeping job list / run / toggle
    health_bp         /api/v1/health  readiness, liveness, table diagnostics
"""
