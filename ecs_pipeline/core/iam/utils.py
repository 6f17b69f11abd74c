"""Reusable IAM helper utilities for the pipeline constructs."""

from __future__ import annotations

from typing import Iterable, Optional


def dedupe(values: Iterable[str]) -> list[str]:
    """Return items without duplicates while preserving order."""
    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        text = str(value or "").strip()
        if not text or text in seen:
            continue
        seen.add(text)
        result.append(text)
    return result


def bucket_arn(bucket_name: str) -> str:
    """Return the ARN for an S3 bucket."""
    bucket = str(bucket_name or "").strip()
    if not bucket:
        raise ValueError("Bucket name must be provided")
    return f"arn:aws:s3:::{bucket}"


def bucket_objects_arn(bucket_name: str, prefix: Optional[str] = None) -> str:
    """Return an object-level ARN for an S3 bucket with an optional prefix."""
    base_arn = bucket_arn(bucket_name)
    if prefix is None or not str(prefix).strip():
        return f"{base_arn}/*"
    normalized = str(prefix).strip().lstrip("/")
    if normalized.endswith("*"):
        return f"{base_arn}/{normalized}"
    return f"{base_arn}/{normalized.rstrip('/')}/*"


def ssm_parameter_arn(parameter_path: str) -> str:
    """Return an any-region/any-account ARN for an SSM parameter path."""
    path = str(parameter_path or "").strip()
    if not path.startswith("/"):
        path = f"/{path}"
    return f"arn:aws:ssm:*:*:parameter{path}"


def ssm_parameter_tree_arns(parameter_path: str) -> list[str]:
    """Return ARNs covering a parameter path and everything below it."""
    base = ssm_parameter_arn(parameter_path).rstrip("/")
    return [base, f"{base}/*"]


def ecr_repository_arn(region: str, account: str, repository_name: str) -> str:
    """Build an ECR repository ARN."""
    return f"arn:aws:ecr:{region}:{account}:repository/{repository_name}"
