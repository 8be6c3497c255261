"""Job applications submitted by candidates, kept as a JSON list in their own file."""
import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Union

from ..models.records import utcnow

logger = logging.getLogger(__name__)

EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

REQUIRED_FIELDS = {
    "fullName": "Full name is required",
    "dateOfBirth": "Date of birth is required",
    "gender": "Gender is required",
    "domicile": "Domicile is required",
    "phoneNumber": "Phone number is required",
    "email": "Email is required",
    "linkedinUrl": "LinkedIn URL is required",
}


def load_applications(path: Union[str, Path]) -> List[Dict[str, Any]]:
    """All stored applications. A missing, unreadable or non-list file is empty."""
    try:
        parsed = json.loads(Path(path).read_text(encoding="utf-8"))
    except FileNotFoundError:
        return []
    except (OSError, ValueError) as e:
        logger.warning(f"Ignoring unreadable application storage at {path}: {e}")
        return []

    if not isinstance(parsed, list):
        return []
    return [entry for entry in parsed if isinstance(entry, dict)]


def save_applications(path: Union[str, Path], entries: List[Dict[str, Any]]) -> None:
    Path(path).write_text(json.dumps(entries, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")


def validate_application(entry: Dict[str, Any]) -> Dict[str, str]:
    """Field errors keyed by field name; empty when the application is complete."""
    errors = {}
    for field, message in REQUIRED_FIELDS.items():
        value = entry.get(field)
        if not isinstance(value, str) or not value.strip():
            errors[field] = message

    email = entry.get("email")
    if "email" not in errors and not EMAIL_REGEX.match(email.strip()):
        errors["email"] = "Invalid email format"
    return errors


def append_application(path: Union[str, Path], entry: Dict[str, Any]) -> Dict[str, Any]:
    stored = {**entry, "submittedAt": entry.get("submittedAt") or utcnow().isoformat()}
    save_applications(path, load_applications(path) + [stored])
    logger.info(f"Stored application from {stored.get('email')} for job {stored.get('jobId')}")
    return stored


def applications_for_job(entries: List[Dict[str, Any]], job: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Applications that reference the job by id or, failing that, by name."""
    job_id = str(job.get("id"))
    name = str((job.get("job") or {}).get("name") or "").strip().lower()

    def matches(entry):
        if entry.get("jobId") is not None and str(entry["jobId"]) == job_id:
            return True
        entry_name = entry.get("jobName")
        return bool(name) and isinstance(entry_name, str) and entry_name.strip().lower() == name

    return [entry for entry in entries if matches(entry)]
