import pytest

from ecs_pipeline.config.environments import get_environment_config
from ecs_pipeline.config.settings import normalize_config
from ecs_pipeline.errors import ConfigParseError


@pytest.mark.parametrize("environment", ["dev", "staging", "prod"])
def test_presets_normalize_with_required_fields(environment) -> None:
    config = get_environment_config(environment)
    config.update(
        {
            "app_name": "shop",
            "stack_version": "1",
            "artifact_bucket_name": "shop-artifacts",
            "codecommit_repo": "shop",
        }
    )

    settings = normalize_config(config)

    assert settings.env_name == environment
    assert settings.capacity.min_capacity <= settings.capacity.desired_capacity <= settings.capacity.max_capacity


def test_prod_preset_retains_resources() -> None:
    config = get_environment_config("prod")

    assert config["removal_policy"] == "retain"
    assert config["min_desired_web_tasks"] >= 2


def test_preset_is_a_copy() -> None:
    config = get_environment_config("dev")
    config["instance_type"] = "m5.large"

    assert get_environment_config("dev")["instance_type"] == "t3.small"


def test_unknown_environment_raises() -> None:
    with pytest.raises(ConfigParseError) as excinfo:
        get_environment_config("qa")

    assert excinfo.value.key == "environment"
