"""
Audit Workflow Tracker
Scheduled jobs blueprint.

Endpoints (prefix /api/v1/audit):
    GET   /jobs                    — registered jobs with persisted run status
    POST  /jobs/<job_name>/run     — run a job now
    PATCH /jobs/<job_name>/toggle  — enable / disable a job
"""

import logging

from flask import Blueprint, jsonify, request

from audit_workflow.services.scheduler_service import SchedulerService
from audit_workflow.utils.errors import E, api_error

logger = logging.getLogger(__name__)

jobs_bp = Blueprint("jobs", __name__, url_prefix="/api/v1/audit")


@jobs_bp.route("/jobs", methods=["GET"])
def list_scheduled_jobs():
    """List all registered jobs with their status."""
    jobs = SchedulerService.list_jobs()
    return jsonify({"jobs": jobs, "total": len(jobs)})


@jobs_bp.route("/jobs/<job_name>/run", methods=["POST"])
def run_job(job_name):
    """Manually trigger a scheduled job."""
    result = SchedulerService.run_job(job_name)
    if result.get("status") == "error" and "Unknown job" in (result.get("error") or ""):
        return api_error(E.NOT_FOUND, result["error"])
    return jsonify(result)


@jobs_bp.route("/jobs/<job_name>/toggle", methods=["PATCH"])
def toggle_job_status(job_name):
    """Enable or disable a scheduled job."""
    data = request.get_json(silent=True) or {}
    enabled = data.get("enabled")
    if not isinstance(enabled, bool):
        return api_error(E.VALIDATION_REQUIRED, "'enabled' field is required (true/false)")

    result = SchedulerService.toggle_job(job_name, enabled)
    if not result:
        return api_error(E.NOT_FOUND, f"Job '{job_name}' not found")
    return jsonify(result)
