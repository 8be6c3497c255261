from fastapi import APIRouter, Depends, HTTPException, Request

from ..auth.session import read_session
from ..db import get_application_storage_path, get_job_storage_path
from ..services.application_storage import (
    append_application,
    applications_for_job,
    load_applications,
    validate_application,
)
from ..services.job_storage import append_job_entry, find_job_entry, load_job_storage
from .schemas_jobs import ApplicationEntryIn, JobEntryIn

router = APIRouter(prefix="/api/jobs", tags=["jobs"])


def require_session(request: Request):
    session = read_session(request)
    if not session:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return session


@router.get("")
def list_jobs(path=Depends(get_job_storage_path)):
    return load_job_storage(path)


@router.get("/{job_id}")
def get_job(job_id: str, path=Depends(get_job_storage_path)):
    job = find_job_entry(path, job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return job


@router.post("")
def create_job(payload: JobEntryIn, session=Depends(require_session), path=Depends(get_job_storage_path)):
    """Publish a job posting. Requires a session."""
    storage = append_job_entry(path, payload.model_dump(by_alias=True, exclude_none=True))
    return storage["jobs"][-1]


@router.post("/{job_id}/applications")
def submit_application(
    job_id: str,
    payload: ApplicationEntryIn,
    jobs_path=Depends(get_job_storage_path),
    applications_path=Depends(get_application_storage_path),
):
    """Store a candidate's application for a job."""
    job = find_job_entry(jobs_path, job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")

    entry = payload.model_dump(by_alias=True, exclude_none=True)
    errors = validate_application(entry)
    if errors:
        raise HTTPException(status_code=400, detail=errors)

    entry["email"] = entry["email"].strip()
    entry["jobId"] = job["id"]
    entry["jobName"] = job["job"]["name"]
    return append_application(applications_path, entry)


@router.get("/{job_id}/applications")
def list_job_applications(
    job_id: str,
    session=Depends(require_session),
    jobs_path=Depends(get_job_storage_path),
    applications_path=Depends(get_application_storage_path),
):
    """Candidates who applied to a job. Requires a session."""
    job = find_job_entry(jobs_path, job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return {"jobId": job["id"], "applications": applications_for_job(load_applications(applications_path), job)}
