"""IAM helper constructs and policy derivations for the pipeline."""

from . import utils  # noqa: F401
from .policies import AccessPolicy, ScopeHints, StatementSpec
from .task_roles import TaskRolesConstruct

__all__ = ["utils", "AccessPolicy", "ScopeHints", "StatementSpec", "TaskRolesConstruct"]
