"""ECS cluster, task and service constructs."""
