import os
import sys
from pathlib import Path
from typing import Any, Callable, Dict, Iterator

import pytest

# Ensure 'shared' layer is importable at collection time (module import stage)
_repo_root = Path(__file__).resolve().parents[1]
# Ensure project root is on sys.path so `ecs_pipeline` and `tests.fixtures` resolve
_repo_root_str = str(_repo_root)
if _repo_root_str not in sys.path:
    sys.path.insert(0, _repo_root_str)
_shared_path = _repo_root / "src" / "lambda" / "layers" / "common" / "python"
_shared_str = str(_shared_path)
if _shared_str not in sys.path:
    sys.path.insert(0, _shared_str)


@pytest.fixture(autouse=True)
def aws_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Ensure default AWS region is set for moto/boto3 clients and clear cross-test env leaks.

    Also removes webhook bindings so notifier tests only see the variables they set.
    """
    monkeypatch.setenv("AWS_REGION", os.environ.get("AWS_REGION", "us-east-1"))
    monkeypatch.setenv("AWS_DEFAULT_REGION", os.environ.get("AWS_DEFAULT_REGION", "us-east-1"))
    # Provide dummy credentials so botocore signing doesn't fail under moto
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")

    for key in list(os.environ):
        if key.startswith("HOOK_URL_PARAMETER_PATH"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.delenv("DISTRO_ID", raising=False)
    monkeypatch.delenv("APP_URL", raising=False)
    yield


@pytest.fixture
def load_module() -> Callable[[str], Dict[str, Any]]:
    import runpy

    def _apply(path: str) -> Dict[str, Any]:
        return runpy.run_path(str(_repo_root / path))

    return _apply


@pytest.fixture
def raw_config() -> Dict[str, Any]:
    """Smallest raw configuration that normalizes successfully."""
    return {
        "app_name": "shop",
        "env_name": "Dev",
        "stack_version": "1",
        "artifact_bucket_name": "shop-artifacts",
        "codecommit_repo": "shop",
    }


@pytest.fixture
def make_settings(raw_config: Dict[str, Any]) -> Callable[..., Any]:
    """Normalize ``raw_config`` with keyword overrides applied on top."""
    from ecs_pipeline.config.settings import normalize_config

    def _apply(**overrides: Any) -> Any:
        return normalize_config({**raw_config, **overrides})

    return _apply


@pytest.fixture
def synth_ecs_stack(make_settings: Callable[..., Any]) -> Callable[..., Any]:
    """Build an ``EcsPipelineStack`` in a fresh app and return ``(stack, template)``."""
    from aws_cdk.assertions import Template

    from ecs_pipeline.stacks.ecs_pipeline_stack import EcsPipelineStack
    from tests.fixtures.cdk_app import new_app

    def _apply(**overrides: Any):
        settings = make_settings(**overrides)
        app = new_app()
        stack = EcsPipelineStack(app, settings.stack_name, settings=settings)
        return stack, Template.from_stack(stack)

    return _apply


def pytest_configure(config):
    """Configure pytest with essential markers."""
    config.addinivalue_line("markers", "unit: unit test")
    config.addinivalue_line("markers", "infrastructure: CDK synthesis test")
    config.addinivalue_line("markers", "lambda_test: Lambda handler test")
    config.addinivalue_line("markers", "config: configuration normalization test")


def pytest_collection_modifyitems(config, items):
    """Add markers based on file location."""
    rootdir = Path(config.rootdir)

    for item in items:
        rel_path = Path(item.fspath).relative_to(rootdir)

        if "unit" in rel_path.parts:
            item.add_marker(pytest.mark.unit)
        if "lambda" in rel_path.parts:
            item.add_marker(pytest.mark.lambda_test)
        if "infrastructure" in rel_path.parts:
            item.add_marker(pytest.mark.infrastructure)
        if "config" in rel_path.parts:
            item.add_marker(pytest.mark.config)
