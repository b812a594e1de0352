"""Built-in agent profiles."""

from mctl.orchestration.models import AgentCapability, AgentDefinition


def _caps(*entries: tuple[str, int, list[str]]) -> list[AgentCapability]:
    return [AgentCapability(name, proficiency, domains) for name, proficiency, domains in entries]


AGENT_PROFILES: dict[str, AgentDefinition] = {
    "ui-specialist": AgentDefinition(
        id="ui-specialist-001",
        name="ui",
        type="ui-specialist",
        capabilities=_caps(
            ("svelte", 95, ["components", "stores", "reactivity"]),
            ("typescript", 90, ["types", "interfaces", "generics"]),
            ("tailwind", 85, ["styling", "responsive", "themes"]),
            ("accessibility", 80, ["aria", "wcag", "keyboard-nav"]),
            ("animation", 75, ["transitions", "css"]),
        ),
        focus_areas=["src/lib/components", "src/lib/stores", "src/routes"],
    ),
    "plugin-developer": AgentDefinition(
        id="plugin-dev-001",
        name="plugin",
        type="plugin-developer",
        capabilities=_caps(
            ("plugin-architecture", 95, ["interfaces", "lifecycle", "isolation"]),
            ("typescript", 90, ["advanced-types", "decorators"]),
            ("module-systems", 85, ["dynamic-import", "lazy-loading", "bundling"]),
            ("state-management", 80, ["stores", "events", "synchronization"]),
        ),
        focus_areas=["src/lib/plugins", "src/lib/components/plugins"],
    ),
    "telemetry-engineer": AgentDefinition(
        id="telemetry-eng-001",
        name="telemetry",
        type="telemetry-engineer",
        capabilities=_caps(
            ("websockets", 95, ["protocols", "reconnection", "binary-data"]),
            ("real-time-processing", 90, ["streaming", "buffering", "throttling"]),
            ("data-visualization", 85, ["charts", "maps", "live-updates"]),
            ("performance-optimization", 90, ["memory", "cpu", "network"]),
        ),
        focus_areas=["src/lib/components/telemetry", "src/lib/utils/websocket"],
    ),
    "test-specialist": AgentDefinition(
        id="test-specialist-001",
        name="test",
        type="test-specialist",
        capabilities=_caps(
            ("testing", 95, ["unit", "integration", "mocking"]),
            ("vitest", 95, ["unit", "integration", "mocking"]),
            ("playwright", 90, ["e2e", "cross-browser", "visual-regression"]),
            ("coverage-analysis", 85, ["metrics", "reporting"]),
        ),
        focus_areas=["tests", "e2e"],
    ),
    "integration-expert": AgentDefinition(
        id="integration-001",
        name="integration",
        type="integration-expert",
        capabilities=_caps(
            ("api-design", 90, ["rest", "graphql", "websocket"]),
            ("system-architecture", 90, ["patterns", "scalability", "security"]),
            ("cross-platform", 80, ["desktop", "web", "compatibility"]),
        ),
        focus_areas=["src/lib/api", "src-tauri"],
    ),
    "validator": AgentDefinition(
        id="validator-001",
        name="validator",
        type="validator",
        capabilities=_caps(
            ("static-analysis", 95, ["ast", "data-flow", "control-flow"]),
            ("testing", 90, ["unit", "integration"]),
            ("security-audit", 90, ["vulnerabilities", "dependencies", "permissions"]),
            ("documentation", 85, ["technical", "compliance", "api"]),
        ),
        focus_areas=["docs"],
    ),
}


def get_profile(agent_type: str, name: str | None = None, id: str | None = None) -> AgentDefinition:
    """Copy a built-in profile, optionally renaming it.

    Raises:
        KeyError: if no profile exists for agent_type.
    """
    profile = AGENT_PROFILES[agent_type]
    return AgentDefinition(
        id=id or profile.id,
        name=name or profile.name,
        type=profile.type,
        capabilities=[
            AgentCapability(c.name, c.proficiency, list(c.domains))
            for c in profile.capabilities
        ],
        focus_areas=list(profile.focus_areas),
    )
