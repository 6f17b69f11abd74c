"""CDK building blocks for ECS application topologies."""
