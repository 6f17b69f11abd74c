"""Development environment configuration."""

import os

dev_config = {
    "account_id": os.environ.get("CDK_DEFAULT_ACCOUNT"),
    "region": os.environ.get("CDK_DEFAULT_REGION", "us-east-1"),
    "env_name": "dev",
    "instance_type": "t3.small",
    "min_capacity": 1,
    "desired_capacity": 1,
    "max_capacity": 2,
    "min_desired_web_tasks": 1,
    "min_desired_queue_tasks": 1,
    "codecommit_branch": "develop",
    "log_retention_days": 14,
    "removal_policy": "destroy",
    "tags": {
        "Environment": "dev",
        "Owner": "DevOps",
    },
}
