"""Tests for TaskScheduler"""
import pytest

from mctl.orchestration.exceptions import AgentBusyError
from mctl.orchestration.models import (
    Agent,
    AgentCapability,
    AgentDefinition,
    AgentState,
    Task,
    TaskState,
)
from mctl.orchestration.scheduler import TaskScheduler


@pytest.fixture
def make_agent(make_workspace):
    def _make(agent_id: str, agent_type: str, **caps: int) -> Agent:
        definition = AgentDefinition(
            id=agent_id,
            name=agent_id,
            type=agent_type,
            capabilities=[AgentCapability(name.replace("_", "-"), p) for name, p in caps.items()],
        )
        return Agent(
            id=agent_id,
            definition=definition,
            workspace=make_workspace(f"agent-{agent_id}"),
            state=AgentState.ACTIVE,
        )
    return _make


def test_validator_wins_testing_task_over_ui(make_agent):
    scheduler = TaskScheduler()
    validator = make_agent("validator", "validator", testing=90)
    ui = make_agent("ui", "ui-specialist", ui=90)
    task = Task(id="t1", type="test", required_capabilities=["testing"])

    assert scheduler.find_best_agent(task, [validator, ui]) is validator


def test_type_compatibility_filters_agents(make_agent):
    scheduler = TaskScheduler()
    ui = make_agent("ui", "ui-specialist", testing=99)
    task = Task(id="t1", type="test", required_capabilities=["testing"])

    assert scheduler.find_best_agent(task, [ui]) is None


def test_proficiency_threshold_is_inclusive(make_agent):
    scheduler = TaskScheduler()
    at_threshold = make_agent("a", "validator", testing=70)
    below = make_agent("b", "validator", testing=69)
    task = Task(id="t1", type="test", required_capabilities=["testing"])

    assert scheduler.find_best_agent(task, [below]) is None
    assert scheduler.find_best_agent(task, [below, at_threshold]) is at_threshold


def test_every_required_capability_must_qualify(make_agent):
    scheduler = TaskScheduler()
    agent = make_agent("a", "validator", testing=95)
    task = Task(id="t1", type="test", required_capabilities=["testing", "security-audit"])

    assert scheduler.find_best_agent(task, [agent]) is None


def test_ties_go_to_earlier_candidate(make_agent):
    scheduler = TaskScheduler()
    first = make_agent("first", "validator", testing=80)
    second = make_agent("second", "validator", testing=80)
    task = Task(id="t1", type="test", required_capabilities=["testing"])

    assert scheduler.find_best_agent(task, [first, second]) is first
    assert scheduler.find_best_agent(task, [second, first]) is second


def test_higher_proficiency_wins(make_agent):
    scheduler = TaskScheduler()
    good = make_agent("good", "validator", testing=80)
    better = make_agent("better", "validator", testing=95)
    task = Task(id="t1", type="test", required_capabilities=["testing"])

    assert scheduler.find_best_agent(task, [good, better]) is better


def test_component_implies_capabilities(make_agent):
    scheduler = TaskScheduler()
    ui = make_agent("ui", "ui-specialist", svelte=95, typescript=90, tailwind=85)
    plugin = make_agent("plugin", "plugin-developer", plugin_architecture=95, typescript=90)
    task = Task(id="t1", type="feature", component="src/lib/components/ui/Button.svelte")

    assert scheduler.required_capabilities(task) == ["svelte", "typescript", "tailwind"]
    assert scheduler.find_best_agent(task, [plugin, ui]) is ui


def test_task_type_implies_capabilities(make_agent):
    scheduler = TaskScheduler()
    untested = make_agent("tests-a", "test-specialist", playwright=90)
    tester = make_agent("tests-b", "test-specialist", testing=95)
    task = Task(id="t1", type="test", component="src/lib/stores")

    assert scheduler.required_capabilities(task) == ["testing"]
    assert scheduler.find_best_agent(task, [untested]) is None
    assert scheduler.find_best_agent(task, [untested, tester]) is tester


def test_component_and_type_capabilities_combine():
    scheduler = TaskScheduler(type_capabilities={"test": ["testing", "typescript"]})
    task = Task(id="t1", type="test", component="plugin-host")

    assert scheduler.required_capabilities(task) == ["plugin-architecture", "typescript", "testing"]


def test_best_agent_always_satisfies_requirements(make_agent):
    scheduler = TaskScheduler()
    pool = [
        make_agent("a", "ui-specialist", testing=100),
        make_agent("b", "test-specialist", testing=60),
        make_agent("c", "test-specialist", testing=75, vitest=72),
        make_agent("d", "validator", testing=90),
    ]
    task = Task(id="t1", type="test", required_capabilities=["testing", "vitest"])

    best = scheduler.find_best_agent(task, pool)

    assert best is pool[2]
    assert scheduler.qualifies(best, task)


def test_submit_is_idempotent():
    scheduler = TaskScheduler()
    task = Task(id="t1", type="feature")

    first = scheduler.submit(task)
    second = scheduler.submit(task)

    assert first is second
    assert scheduler.get_task_state("t1") is TaskState.PENDING


def test_is_ready_requires_completed_dependencies(make_agent):
    scheduler = TaskScheduler()
    agent = make_agent("a", "ui-specialist")
    parent = Task(id="parent", type="feature")
    child = Task(id="child", type="feature", dependencies=["parent"])
    scheduler.submit(parent)
    scheduler.submit(child)

    assert scheduler.is_ready("parent") is True
    assert scheduler.is_ready("child") is False

    scheduler.assign_task(parent, agent)
    scheduler.complete_task("parent")

    assert scheduler.is_ready("child") is True


def test_assign_task_to_busy_agent_raises(make_agent):
    scheduler = TaskScheduler()
    agent = make_agent("a", "ui-specialist")
    scheduler.assign_task(Task(id="t1", type="feature"), agent)

    with pytest.raises(AgentBusyError):
        scheduler.assign_task(Task(id="t2", type="feature"), agent)

    assert scheduler.is_busy(agent)
    assert scheduler.active_task_for("a") == "t1"


def test_complete_task_frees_agent(make_agent):
    scheduler = TaskScheduler()
    agent = make_agent("a", "ui-specialist")
    scheduler.assign_task(Task(id="t1", type="feature"), agent)

    scheduler.complete_task("t1")

    assert not scheduler.is_busy(agent)
    assert scheduler.get_task_state("t1") is TaskState.COMPLETED
    assert scheduler.get_active_tasks() == {}


def test_failed_task_retries_until_cap(make_agent):
    scheduler = TaskScheduler(max_retries=2)
    agent = make_agent("a", "ui-specialist")
    task = Task(id="t1", type="feature")

    scheduler.assign_task(task, agent)
    assert scheduler.fail_task("t1") is TaskState.PENDING
    assert not scheduler.is_busy(agent)

    scheduler.assign_task(task, agent)
    assert scheduler.fail_task("t1") is TaskState.FAILED
    assert scheduler.get_record("t1").attempts == 2


def test_release_agent_returns_task_to_pending(make_agent):
    scheduler = TaskScheduler()
    agent = make_agent("a", "ui-specialist")
    task = Task(id="t1", type="feature")
    scheduler.assign_task(task, agent)

    released = scheduler.release_agent("a")

    assert released is task
    assert scheduler.get_task_state("t1") is TaskState.PENDING
    assert scheduler.release_agent("a") is None


def test_dependent_tasks_are_distinct_and_pending():
    scheduler = TaskScheduler()
    scheduler.submit(Task(id="root", type="feature"))
    scheduler.submit(Task(id="a", type="feature", dependencies=["root", "root"]))
    scheduler.submit(Task(id="b", type="test", dependencies=["root"]))
    scheduler.submit(Task(id="c", type="test", dependencies=["other"]))

    dependents = scheduler.get_dependent_tasks("root")

    assert [t.id for t in dependents] == ["a", "b"]


def test_dependents_exclude_non_pending(make_agent):
    scheduler = TaskScheduler()
    agent = make_agent("x", "ui-specialist")
    scheduler.submit(Task(id="root", type="feature"))
    child = Task(id="child", type="feature", dependencies=["root"])
    scheduler.assign_task(child, agent)

    assert scheduler.get_dependent_tasks("root") == []


def test_unknown_task_type_rejected():
    with pytest.raises(ValueError):
        Task(id="t1", type="deploy")


def test_pending_tasks_ordered_by_priority():
    scheduler = TaskScheduler()
    scheduler.submit(Task(id="low", type="test", priority=1))
    scheduler.submit(Task(id="first-default", type="test"))
    scheduler.submit(Task(id="urgent", type="bugfix", priority=9))
    scheduler.submit(Task(id="second-default", type="documentation"))

    assert [t.id for t in scheduler.get_pending_tasks()] == [
        "urgent", "first-default", "second-default", "low",
    ]
