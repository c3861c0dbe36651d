"""
Terminal server: development-environment checks and guarded commands.

Only commands on the read-only allow-list are ever executed, and they run
without a shell under a hard timeout. Anything that could modify the system
is answered with an approval request instead of being run.
"""

import logging
import shlex
import shutil
import subprocess
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from onboarding_os.core import ToolRegistry, UnsafeCommandError
from onboarding_os.fixtures import load_fixture

logger = logging.getLogger(__name__)

SERVER_NAME = "terminal-mcp"
DEFAULT_TIMEOUT = 10.0
# Options that make an otherwise read-only command write to a file
WRITE_OPTIONS = ("--output", "-o", "--output-directory", "--log-file")


def _is_write_option(word: str) -> bool:
    return word.split("=", 1)[0] in WRITE_OPTIONS


class CommandRunner:
    """
    Runs allow-listed commands and probes installed tools.

    Attributes:
        safe_commands: Allowed command prefixes
        timeout: Seconds before a command is killed
        cwd: Working directory for commands and project file checks
    """

    def __init__(
        self,
        safe_commands: List[str],
        timeout: float = DEFAULT_TIMEOUT,
        cwd: Optional[Path] = None,
        run: Callable[..., subprocess.CompletedProcess] = subprocess.run,
        which: Callable[[str], Optional[str]] = shutil.which,
    ):
        self.safe_commands = list(safe_commands)
        self.timeout = timeout
        self.cwd = Path(cwd) if cwd else Path.cwd()
        self._run = run
        self._which = which

    def is_installed(self, name: str) -> bool:
        return self._which(name) is not None

    def version(self, name: str, flag: str = "--version") -> Optional[str]:
        """First line of `<name> --version`, or None if it cannot be read."""
        executable = self._which(name)
        if executable is None:
            return None
        try:
            completed = self._run(
                [executable, flag],
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=True,
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug("Version probe for %s failed: %s", name, e)
            return None
        output = completed.stdout.strip() or completed.stderr.strip()
        return output.splitlines()[0] if output else None

    def is_safe(self, command: str) -> bool:
        """
        True when the command is allowed to run without approval.

        An entry that already fixes its options (its last word starts with
        "-", e.g. "node --version") must match exactly. Any other entry
        matches as a prefix at a word boundary, provided no extra argument
        is a file-writing option such as --output. Words are split the way
        run_safe() splits them, so quoting cannot hide an option.
        """
        try:
            words = shlex.split(command.lower())
        except ValueError:
            return False
        for safe in self.safe_commands:
            prefix = safe.lower().split()
            if words[:len(prefix)] != prefix:
                continue
            extra = words[len(prefix):]
            if not extra:
                return True
            if prefix[-1].startswith("-"):
                continue
            if not any(_is_write_option(word) for word in extra):
                return True
        return False

    def run_safe(self, command: str) -> Dict[str, Any]:
        """
        Execute an allow-listed command.

        Returns:
            {"output", "success": True} or {"error", "success": False}

        Raises:
            UnsafeCommandError: If the command is not on the allow-list
        """
        if not self.is_safe(command):
            raise UnsafeCommandError(command, self.safe_commands)

        try:
            argv = shlex.split(command)
        except ValueError as e:
            return {"error": f"Could not parse command: {e}", "success": False}

        executable = self._which(argv[0])
        if executable is None:
            return {"error": f"Command not found: {argv[0]}", "success": False}

        logger.info("Running safe command: %s", command)
        try:
            completed = self._run(
                [executable, *argv[1:]],
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=True,
                cwd=str(self.cwd),
            )
        except subprocess.TimeoutExpired:
            return {"error": f"Command timed out after {self.timeout:g}s", "success": False}
        except subprocess.CalledProcessError as e:
            detail = (e.stderr or "").strip() or str(e)
            return {"error": detail, "success": False}
        except OSError as e:
            return {"error": str(e), "success": False}

        return {"output": completed.stdout.strip(), "success": True}


def check_dev_environment(
    runner: CommandRunner,
    tools: List[Dict[str, Any]],
    project_files: List[Dict[str, Any]],
) -> Dict[str, Any]:
    """Check required tools and project files and summarize the result."""
    checks: Dict[str, Any] = {
        "tools": {},
        "files": {},
        "summary": {"passed": 0, "failed": 0, "warnings": 0},
    }
    summary = checks["summary"]

    for tool in tools:
        installed = runner.is_installed(tool["name"])
        if installed:
            status = "✅ OK"
            summary["passed"] += 1
        elif tool["required"]:
            status = "❌ MISSING"
            summary["failed"] += 1
        else:
            status = "⚠️ Optional"
            summary["warnings"] += 1

        checks["tools"][tool["display_name"]] = {
            "installed": installed,
            "version": runner.version(tool["name"]) if installed else None,
            "required": tool["required"],
            "status": status,
        }

    for project_file in project_files:
        exists = (runner.cwd / project_file["path"]).exists()
        if exists:
            status = "✅ Found"
            summary["passed"] += 1
        elif project_file["required"]:
            status = "❌ MISSING"
            summary["failed"] += 1
        else:
            status = "⚠️ Not found"

        checks["files"][project_file["name"]] = {
            "exists": exists,
            "required": project_file["required"],
            "status": status,
        }

    if summary["failed"] == 0:
        checks["overallStatus"] = "✅ Environment Ready"
    else:
        checks["overallStatus"] = f"❌ {summary['failed']} issue(s) need attention"
    return checks


def get_setup_instructions(issue: str, instructions: Dict[str, Dict[str, Any]]) -> Dict[str, Any]:
    if issue in instructions:
        return instructions[issue]
    return {
        "title": f"Fix: {issue}",
        "steps": ["Please check documentation for installation instructions"],
    }


def approval_request(command: str, reason: str) -> Dict[str, Any]:
    """Describe a system-modifying command without running it."""
    return {
        "status": "APPROVAL_REQUIRED",
        "command": command,
        "reason": reason,
        "executed": False,
        "message": "⚠️ This command requires approval and was not executed.",
        "securityNote": "The approval layer will show this command to the user for explicit approval before execution.",
    }


def suggest_next_steps(current_task: str, environment: Dict[str, Any]) -> Dict[str, Any]:
    suggestions = []
    task = current_task.lower()

    failed = environment["summary"]["failed"]
    if failed > 0:
        suggestions.append({
            "priority": "HIGH",
            "action": "Fix environment issues first",
            "details": f"{failed} required item(s) are missing",
        })

    if "setup" in task or "install" in task:
        suggestions.append({
            "priority": "MEDIUM",
            "action": "Run npm install",
            "details": "Install project dependencies",
        })
        suggestions.append({
            "priority": "MEDIUM",
            "action": "Copy .env.example to .env",
            "details": "Set up environment variables",
        })

    if "run" in task or "start" in task:
        suggestions.append({
            "priority": "HIGH",
            "action": "Check environment first",
            "details": "Make sure all dependencies are installed",
        })
        suggestions.append({
            "priority": "MEDIUM",
            "action": "Run npm run dev",
            "details": "Start the development server",
        })

    return {
        "currentTask": current_task,
        "environmentStatus": environment["overallStatus"],
        "suggestions": suggestions,
    }


def registry_options(config) -> Dict[str, Any]:
    """Factory keyword arguments derived from a ServerConfig."""
    return {"cwd": config.project_root, "timeout": config.command_timeout}


def create_registry(
    cwd: Optional[Path] = None,
    timeout: float = DEFAULT_TIMEOUT,
    runner: Optional[CommandRunner] = None,
) -> ToolRegistry:
    """
    Build the terminal server's tool registry.

    Args:
        cwd: Project directory to check and run commands in
        timeout: Per-command timeout in seconds
        runner: Pre-built CommandRunner (overrides cwd/timeout)
    """
    fixture = load_fixture("terminal")
    if runner is None:
        runner = CommandRunner(fixture["safe_commands"], timeout=timeout, cwd=cwd)
    registry = ToolRegistry(SERVER_NAME)

    def environment() -> Dict[str, Any]:
        return check_dev_environment(runner, fixture["tools"], fixture["project_files"])

    @registry.tool(
        "check_dev_environment",
        "Check if the development environment is properly set up. "
        "Verifies tools (node, npm, git, docker) and project files.",
    )
    def _check_dev_environment(args):
        return environment()

    @registry.tool(
        "get_setup_instructions",
        "Get step-by-step instructions to fix a specific environment issue",
        {
            "type": "object",
            "properties": {
                "issue": {
                    "type": "string",
                    "description": 'The tool or file that needs to be set up (e.g., "node", "git", ".env")',
                },
            },
            "required": ["issue"],
        },
    )
    def _get_setup_instructions(args):
        return get_setup_instructions(args["issue"], fixture["setup_instructions"])

    @registry.tool(
        "run_safe_command",
        "Run a safe, read-only terminal command (version checks, git status, etc.)",
        {
            "type": "object",
            "properties": {
                "command": {"type": "string", "description": "Safe command to run"},
            },
            "required": ["command"],
        },
    )
    def _run_safe_command(args):
        return runner.run_safe(args["command"])

    @registry.tool(
        "run_setup_command",
        "⚠️ REQUIRES APPROVAL: Run a setup command that may modify the system "
        "(npm install, etc.). The command is never executed directly; an "
        "approval request is returned instead.",
        {
            "type": "object",
            "properties": {
                "command": {"type": "string", "description": "Setup command to run (requires approval)"},
                "reason": {"type": "string", "description": "Explanation of why this command needs to run"},
            },
            "required": ["command", "reason"],
        },
    )
    def _run_setup_command(args):
        return approval_request(args["command"], args["reason"])

    @registry.tool(
        "suggest_next_steps",
        "Based on the current environment state, suggest what the developer should do next",
        {
            "type": "object",
            "properties": {
                "currentTask": {"type": "string", "description": "What the developer is trying to do"},
            },
            "required": ["currentTask"],
        },
    )
    def _suggest_next_steps(args):
        return suggest_next_steps(args["currentTask"], environment())

    return registry
