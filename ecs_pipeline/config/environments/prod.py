"""Production environment configuration."""

import os

prod_config = {
    "account_id": os.environ.get("CDK_DEFAULT_ACCOUNT"),
    "region": os.environ.get("CDK_DEFAULT_REGION", "us-east-1"),
    "env_name": "prod",
    "instance_type": "t3.large",
    "min_capacity": 2,
    "desired_capacity": 2,
    "max_capacity": 5,
    # Keep at least two web tasks behind the load balancer in production
    "min_desired_web_tasks": 2,
    "min_desired_queue_tasks": 1,
    "codecommit_branch": "main",
    "log_retention_days": 90,
    "removal_policy": "retain",
    "tags": {
        "Environment": "prod",
        "Owner": "DevOps",
        "CostCenter": "Engineering",
    },
}
