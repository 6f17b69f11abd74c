"""Staging environment configuration."""

import os

staging_config = {
    "account_id": os.environ.get("CDK_DEFAULT_ACCOUNT"),
    "region": os.environ.get("CDK_DEFAULT_REGION", "us-east-1"),
    "env_name": "staging",
    "instance_type": "t3.medium",
    "min_capacity": 1,
    "desired_capacity": 1,
    "max_capacity": 5,
    "min_desired_web_tasks": 1,
    "min_desired_queue_tasks": 1,
    "codecommit_branch": "staging",
    "log_retention_days": 30,
    "removal_policy": "destroy",
    "tags": {
        "Environment": "staging",
        "Owner": "DevOps",
    },
}
