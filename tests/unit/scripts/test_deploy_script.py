import pytest

SCRIPT = "scripts/deploy/deploy.py"


def test_context_args_prefix_environment(load_module) -> None:
    context_args = load_module(SCRIPT)["context_args"]

    assert context_args("staging", ["appName=shop", "stackVersion=2"]) == [
        "--context",
        "environment=staging",
        "--context",
        "appName=shop",
        "--context",
        "stackVersion=2",
    ]


def test_context_args_reject_bare_keys(load_module) -> None:
    context_args = load_module(SCRIPT)["context_args"]

    with pytest.raises(ValueError, match="key=value"):
        context_args("dev", ["appName"])


def test_deploy_all_stacks_without_selection(monkeypatch, load_module) -> None:
    mod = load_module(SCRIPT)
    commands = []
    monkeypatch.setitem(mod["deploy_stacks"].__globals__, "run_command", lambda cmd, **kwargs: commands.append(cmd))

    mod["deploy_stacks"]("dev", ["appName=shop"])

    bootstrap, deploy = commands
    assert bootstrap[:2] == ["cdk", "bootstrap"]
    assert deploy[:3] == ["cdk", "deploy", "--all"]
    assert deploy[-2:] == ["--require-approval", "never"]
    assert "appName=shop" in deploy
