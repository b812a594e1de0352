"""Default configuration values."""

# Minimum proficiency an agent needs in every required capability of a task
PROFICIENCY_THRESHOLD = 70

# Which task types each agent type accepts
DEFAULT_TYPE_COMPATIBILITY = {
    "ui-specialist": ["feature", "bugfix", "refactor"],
    "plugin-developer": ["feature", "optimization"],
    "telemetry-engineer": ["feature", "optimization"],
    "test-specialist": ["test", "bugfix"],
    "integration-expert": ["feature", "refactor"],
    "validator": ["test", "documentation"],
}

# Capabilities implied by a task component when the task declares none
DEFAULT_COMPONENT_CAPABILITIES = {
    "ui": ["svelte", "typescript", "tailwind"],
    "plugin": ["plugin-architecture", "typescript"],
}

# Capabilities implied by a task type when the task declares none
DEFAULT_TYPE_CAPABILITIES = {
    "test": ["testing"],
}

# Checks run in a workspace by the command validator
DEFAULT_PRE_COMMIT_CHECKS = [
    "ruff check --output-format=concise .",
]

# Bounded retry cap for tasks failing validation
DEFAULT_MAX_TASK_RETRIES = 3

# Workspace layout
DEFAULT_WORKTREE_BASE_PATH = ".mctl/worktrees"
DEFAULT_BRANCH_PREFIX = "agent"
DEFAULT_MAX_AGENTS = 6

# Queue bounds
DEFAULT_EVENT_QUEUE_SIZE = 1000
DEFAULT_MESSAGE_QUEUE_SIZE = 100

# tmux defaults
DEFAULT_TMUX_SESSION_NAME = "mctl-session"
DEFAULT_TMUX_LAYOUT = "tiled"
