"""Versioned JSON document holding published job postings and the form draft."""
import hashlib
import json
import logging
import math
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..models.records import utcnow

logger = logging.getLogger(__name__)

JOB_STORAGE_VERSION = 1
JOB_STATUSES = ("draft", "active", "inactive")


def empty_job_storage() -> Dict[str, Any]:
    return {
        "version": JOB_STORAGE_VERSION,
        "jobs": [],
        "draft": {"applicationForm": None},
    }


def _dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _str(value: Any, default: str = "") -> str:
    return default if value is None else str(value)


def _number_or_none(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value if math.isfinite(value) else None


def _derived_job_id(entry: Any) -> str:
    """Stable id for a stored entry that has none, so it can be fetched by id."""
    digest = hashlib.sha1(json.dumps(entry, sort_keys=True, default=str).encode("utf-8")).hexdigest()
    return f"job-{digest[:12]}"


def normalize_job_entry(entry: Any) -> Dict[str, Any]:
    """Coerce a loosely shaped job entry into the stored shape, filling defaults."""
    source = _dict(entry)
    metadata = _dict(source.get("metadata"))
    job = _dict(source.get("job"))
    hiring = _dict(source.get("hiring"))
    salary = _dict(source.get("salary"))
    salary_range = _dict(salary.get("range"))
    formatted = _dict(salary.get("formatted"))

    status = source.get("status")
    candidates = _number_or_none(hiring.get("candidatesNeeded"))

    normalized_job = {
        "name": _str(job.get("name"), "Untitled Role"),
        "type": _str(job.get("type")),
        "description": _str(job.get("description")),
    }
    if isinstance(job.get("meta"), dict):
        normalized_job["meta"] = job["meta"]

    return {
        "id": _str(source.get("id"), _derived_job_id(entry)),
        "status": status if status in JOB_STATUSES else "draft",
        "metadata": {
            "createdAt": _str(metadata.get("createdAt"), utcnow().isoformat()),
        },
        "job": normalized_job,
        "hiring": {
            "candidatesNeeded": int(candidates) if candidates is not None else 0,
        },
        "salary": {
            "currency": _str(salary.get("currency"), "IDR"),
            "range": {
                "min": _number_or_none(salary_range.get("min")),
                "max": _number_or_none(salary_range.get("max")),
            },
            "formatted": {
                "min": _str(formatted.get("min")),
                "max": _str(formatted.get("max")),
            },
        },
        "applicationForm": source.get("applicationForm") if isinstance(source.get("applicationForm"), dict) else None,
    }


def load_job_storage(path: Union[str, Path]) -> Dict[str, Any]:
    """Load the job document. Anything unreadable yields the empty document."""
    try:
        parsed = json.loads(Path(path).read_text(encoding="utf-8"))
    except FileNotFoundError:
        return empty_job_storage()
    except (OSError, ValueError) as e:
        logger.warning(f"Ignoring unreadable job storage at {path}: {e}")
        return empty_job_storage()

    if not isinstance(parsed, dict) or not isinstance(parsed.get("jobs"), list):
        return empty_job_storage()

    draft = parsed.get("draft")
    return {
        "version": parsed.get("version") or JOB_STORAGE_VERSION,
        "jobs": [normalize_job_entry(entry) for entry in parsed["jobs"]],
        "draft": draft if isinstance(draft, dict) else {"applicationForm": None},
    }


def save_job_storage(path: Union[str, Path], storage: Dict[str, Any]) -> None:
    payload = {
        "version": storage.get("version") or JOB_STORAGE_VERSION,
        "jobs": [normalize_job_entry(entry) for entry in storage.get("jobs") or []],
        "draft": storage.get("draft") or {"applicationForm": None},
    }
    Path(path).write_text(json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")


def append_job_entry(path: Union[str, Path], entry: Dict[str, Any]) -> Dict[str, Any]:
    """Append a job and remember its application form as the current draft."""
    current = load_job_storage(path)
    if _dict(entry).get("id") is None:
        entry = {**_dict(entry), "id": f"job-{int(time.time() * 1000)}"}
    normalized = normalize_job_entry(entry)
    jobs: List[Dict[str, Any]] = current["jobs"] + [normalized]
    draft_form = normalized["applicationForm"] or _dict(current.get("draft")).get("applicationForm")

    storage = {
        "version": JOB_STORAGE_VERSION,
        "jobs": jobs,
        "draft": {"applicationForm": draft_form},
    }
    save_job_storage(path, storage)
    return storage


def find_job_entry(path: Union[str, Path], job_id: str) -> Optional[Dict[str, Any]]:
    return next((job for job in load_job_storage(path)["jobs"] if job["id"] == job_id), None)
