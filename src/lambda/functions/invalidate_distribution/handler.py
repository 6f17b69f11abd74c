"""CodePipeline action that invalidates every path of a CloudFront distribution."""

import os
import time
from typing import Any, Dict

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from shared.utils.logger import get_logger

INVALIDATION_PATHS = ["/*"]


def main(event: Dict[str, Any], context: Any) -> str:
    """Invalidate ``DISTRO_ID`` and report the outcome to the invoking job.

    The job id is always reported back, success or failure, so the Deploy
    stage never waits on a silent function.
    """
    job_id = event["CodePipeline.job"]["id"]
    log = get_logger(__name__, job_id=job_id)
    code_pipeline = boto3.client("codepipeline")

    try:
        distribution_id = os.environ["DISTRO_ID"]
        cloudfront = boto3.client("cloudfront")
        response = cloudfront.create_invalidation(
            DistributionId=distribution_id,
            InvalidationBatch={
                "Paths": {"Quantity": len(INVALIDATION_PATHS), "Items": INVALIDATION_PATHS},
                "CallerReference": str(time.time()),
            },
        )
        log.info(
            "Sent invalidation to distribution",
            extra={
                "distribution_id": distribution_id,
                "invalidation_id": response.get("Invalidation", {}).get("Id"),
            },
        )
        code_pipeline.put_job_success_result(jobId=job_id)
    except (KeyError, ClientError, BotoCoreError) as exc:
        log.error("Invalidation failed", extra={"error": str(exc)})
        code_pipeline.put_job_failure_result(
            jobId=job_id,
            failureDetails={"message": str(exc), "type": "JobFailed"},
        )

    log.info("Function complete")
    return "Complete."
