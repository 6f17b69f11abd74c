from ecs_pipeline.errors import ConfigParseError

from .dev import dev_config
from .staging import staging_config
from .prod import prod_config


def get_environment_config(environment: str) -> dict:
    """Get configuration preset for the specified environment."""
    configs = {
        "dev": dev_config,
        "staging": staging_config,
        "prod": prod_config,
    }

    if environment not in configs:
        raise ConfigParseError("environment", f"unknown environment '{environment}'")

    return dict(configs[environment])
