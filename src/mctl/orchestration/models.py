"""Core data models for mission control orchestration."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Literal

TASK_TYPES = {"feature", "bugfix", "refactor", "test", "documentation", "optimization"}

MergeType = Literal["octopus", "sequential", "rebase"]
ConflictResolution = Literal["abort", "manual", "assisted"]


@dataclass
class WorkspaceStatus:
    """Cached snapshot of a workspace relative to its base branch"""
    clean: bool = True
    ahead: int = 0
    behind: int = 0
    conflict_files: list[str] = field(default_factory=list)
    modified_files: list[str] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        """Uncommitted modifications or commits not yet on the base branch"""
        return not self.clean or self.ahead > 0

    def to_dict(self) -> dict:
        return {
            "clean": self.clean,
            "ahead": self.ahead,
            "behind": self.behind,
            "conflict_files": list(self.conflict_files),
            "modified_files": list(self.modified_files),
        }


@dataclass
class Workspace:
    """Isolated git worktree assigned to one agent"""
    id: str
    path: str
    branch_name: str
    base_branch_name: str
    status: WorkspaceStatus = field(default_factory=WorkspaceStatus)
    last_sync: datetime = field(default_factory=datetime.now)


@dataclass
class AgentCapability:
    name: str
    proficiency: int  # 0-100
    domains: list[str] = field(default_factory=list)


@dataclass
class AgentDefinition:
    """What an agent is and what it is good at"""
    id: str
    name: str
    type: str  # "ui-specialist", "validator", ...
    capabilities: list[AgentCapability] = field(default_factory=list)
    focus_areas: list[str] = field(default_factory=list)

    def proficiency(self, capability: str) -> int | None:
        """Proficiency for a named capability, None if the agent lacks it"""
        for cap in self.capabilities:
            if cap.name == capability:
                return cap.proficiency
        return None


class AgentState(Enum):
    STARTING = "starting"
    ACTIVE = "active"
    PAUSED = "paused"
    STOPPED = "stopped"


@dataclass
class Agent:
    """A running agent bound 1:1 to its workspace"""
    id: str
    definition: AgentDefinition
    workspace: Workspace
    pane_id: str | None = None
    state: AgentState = AgentState.STARTING
    current_task_id: str | None = None

    @property
    def is_live(self) -> bool:
        return self.state is not AgentState.STOPPED

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.definition.name,
            "type": self.definition.type,
            "state": self.state.value,
            "workspace": self.workspace.path,
            "branch": self.workspace.branch_name,
            "pane_id": self.pane_id,
            "task": self.current_task_id,
        }


@dataclass
class Task:
    """A unit of development work"""
    id: str
    type: str  # one of TASK_TYPES
    component: str = ""
    dependencies: list[str] = field(default_factory=list)
    required_capabilities: list[str] = field(default_factory=list)
    priority: int = 5  # higher is dispatched first
    requirements: list[str] = field(default_factory=list)

    def __post_init__(self):
        if self.type not in TASK_TYPES:
            raise ValueError(f"Unknown task type: {self.type}")


class TaskState(Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class Violation:
    """A single finding from workspace validation"""
    file: str
    severity: str  # "warning" | "error"
    message: str
    line: int | None = None
    rule: str | None = None


@dataclass
class ValidationResult:
    """Outcome of validating one workspace"""
    passed: bool
    violations: list[Violation] = field(default_factory=list)
    workspace_id: str | None = None
    duration: float = 0.0

    @property
    def error_violations(self) -> list[Violation]:
        return [v for v in self.violations if v.severity == "error"]

    def to_dict(self) -> dict:
        return {
            "passed": self.passed,
            "workspace_id": self.workspace_id,
            "duration": self.duration,
            "violations": [
                {
                    "file": v.file,
                    "severity": v.severity,
                    "message": v.message,
                    "line": v.line,
                    "rule": v.rule,
                }
                for v in self.violations
            ],
        }


@dataclass(frozen=True)
class MergeStrategy:
    """How agent branches are reconciled into the target branch"""
    type: MergeType = "sequential"
    test_before_merge: bool = True
    require_all_tests_pass: bool = True
    conflict_resolution: ConflictResolution = "abort"


@dataclass
class ConflictInfo:
    file: str
    conflict_type: str = "content"  # "content" | "rename" | "delete"
    branches: list[str] = field(default_factory=list)
    resolution: str | None = None


@dataclass
class MergeResult:
    """Result of merging workspaces into a target branch"""
    success: bool
    merged_branch: str | None = None
    conflicts: list[ConflictInfo] | None = None
    test_results: list[ValidationResult] | None = None
    validation_results: ValidationResult | None = None

    def to_dict(self) -> dict:
        data: dict[str, Any] = {"success": self.success}
        if self.merged_branch is not None:
            data["merged_branch"] = self.merged_branch
        if self.conflicts is not None:
            data["conflicts"] = [
                {
                    "file": c.file,
                    "conflict_type": c.conflict_type,
                    "branches": list(c.branches),
                    "resolution": c.resolution,
                }
                for c in self.conflicts
            ]
        if self.test_results is not None:
            data["test_results"] = [r.to_dict() for r in self.test_results]
        if self.validation_results is not None:
            data["validation_results"] = self.validation_results.to_dict()
        return data
