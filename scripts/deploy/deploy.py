#!/usr/bin/env python3
"""Deployment script for the ECS pipeline CDK application."""

import argparse
import os
import shlex
import subprocess
import sys
from typing import List, Mapping, Optional, Sequence


def run_command(
    command: Sequence[str], *, check: bool = True, env: Optional[Mapping[str, str]] = None
) -> subprocess.CompletedProcess[str]:
    """Execute a subprocess without shell interpolation."""

    printable = " ".join(shlex.quote(part) for part in command)
    print(f"Running: {printable}")

    result = subprocess.run(command, capture_output=True, text=True, env=env, check=False)

    if check and result.returncode != 0:
        print(f"Command failed with return code {result.returncode}")
        if result.stdout:
            print(f"stdout: {result.stdout}")
        if result.stderr:
            print(f"stderr: {result.stderr}")
        sys.exit(result.returncode)

    return result


def context_args(environment: str, options: Sequence[str]) -> List[str]:
    """Render ``--context`` flags for the preset name and each ``key=value`` option."""
    args = ["--context", f"environment={environment}"]
    for option in options:
        if "=" not in option:
            raise ValueError(f"Context option must look like key=value: {option}")
        args.extend(["--context", option])
    return args


def deploy_stacks(environment: str, options: Sequence[str], stacks: Optional[str] = None) -> None:
    """Deploy CDK stacks to the specified environment."""
    print(f"Deploying to environment: {environment}")

    exec_env = {**os.environ}
    exec_env.setdefault("CDK_DEFAULT_REGION", "us-east-1")
    context = context_args(environment, options)

    # Bootstrap CDK if needed
    print("Checking CDK bootstrap status...")
    run_command(["cdk", "bootstrap", *context], check=False, env=exec_env)

    # Deploy stacks
    deploy_cmd = ["cdk", "deploy"]
    if stacks:
        deploy_cmd.extend(shlex.split(stacks))
    else:
        deploy_cmd.append("--all")

    deploy_cmd.extend([*context, "--require-approval", "never"])

    run_command(deploy_cmd, env=exec_env)
    print(f"Deployment to {environment} completed successfully!")


def main():
    """Main deployment function."""
    parser = argparse.ArgumentParser(description="Deploy ECS pipeline CDK stacks")
    parser.add_argument(
        "--environment", "-e", choices=["dev", "staging", "prod"], default="dev", help="Target environment preset"
    )
    parser.add_argument("--stacks", "-s", help="Specific stacks to deploy (space-separated)")
    parser.add_argument(
        "--context",
        "-c",
        action="append",
        default=[],
        help="CDK context option, e.g. -c appName=shop -c certificateArns='[\"arn:...\"]'",
    )

    args = parser.parse_args()

    # Install the project first
    print("Installing Python dependencies...")
    run_command([sys.executable, "-m", "pip", "install", "-e", "."])

    # Deploy stacks
    deploy_stacks(args.environment, args.context, args.stacks)


if __name__ == "__main__":
    main()
