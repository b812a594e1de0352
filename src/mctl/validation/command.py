"""Validate workspaces by running check commands in a subprocess"""
import asyncio
import logging
import re
import shlex
import time

from mctl.orchestration.models import ValidationResult, Violation, Workspace
from mctl.validation.protocol import ValidationGateway

logger = logging.getLogger(__name__)

# path:line[:col]: message  (ruff concise, flake8, mypy, pylint parseable)
FINDING_PATTERN = re.compile(
    r"^(?P<file>[^:\s][^:]*):(?P<line>\d+)(?::(?P<col>\d+))?:\s*(?P<message>.+)$"
)
RULE_PATTERN = re.compile(r"^(?:error:\s*)?(?P<rule>[A-Z]+\d+)\b")


class CommandValidator(ValidationGateway):
    """Runs each configured check command inside the workspace"""

    def __init__(self, checks: list[str]):
        self.checks = checks

    async def validate(self, workspace: Workspace) -> ValidationResult:
        """Run all checks; the workspace passes when no error is reported"""
        started = time.monotonic()
        violations: list[Violation] = []

        for check in self.checks:
            violations.extend(await self._run_check(check, workspace))

        passed = not any(v.severity == "error" for v in violations)
        return ValidationResult(
            passed=passed,
            violations=violations,
            workspace_id=workspace.id,
            duration=time.monotonic() - started,
        )

    async def _run_check(self, check: str, workspace: Workspace) -> list[Violation]:
        cmd = shlex.split(check)
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=workspace.path,
            )
            stdout, stderr = await process.communicate()
        except FileNotFoundError:
            return [
                Violation(
                    file="",
                    severity="error",
                    message=f"Check command not found: {cmd[0]}",
                    rule=check,
                )
            ]

        output = stdout.decode("utf-8", errors="replace")
        errors = stderr.decode("utf-8", errors="replace")
        return self._summarize_result(check, output, errors, process.returncode or 0)

    def _summarize_result(
        self,
        check: str,
        stdout: str,
        stderr: str,
        exit_code: int
    ) -> list[Violation]:
        """Turn command output into violations.

        A failing command makes its findings errors; findings printed by a
        passing command are kept as warnings.
        """
        severity = "error" if exit_code != 0 else "warning"
        violations = parse_findings(stdout + "\n" + stderr, severity)

        if exit_code != 0 and not violations:
            preview = (stderr or stdout).strip()[:200]
            violations.append(
                Violation(
                    file="",
                    severity="error",
                    message=f"`{check}` exited with {exit_code}: {preview}",
                    rule=check,
                )
            )

        logger.debug("%s: exit %d, %d findings", check, exit_code, len(violations))
        return violations


def parse_findings(output: str, severity: str) -> list[Violation]:
    """Extract `path:line[:col]: message` findings from tool output"""
    findings = []
    for line in output.splitlines():
        match = FINDING_PATTERN.match(line.strip())
        if not match:
            continue
        message = match.group("message").strip()
        line_severity = severity
        if message.lower().startswith("warning"):
            line_severity = "warning"
        rule_match = RULE_PATTERN.match(message)
        findings.append(
            Violation(
                file=match.group("file"),
                severity=line_severity,
                message=message,
                line=int(match.group("line")),
                rule=rule_match.group("rule") if rule_match else None,
            )
        )
    return findings
