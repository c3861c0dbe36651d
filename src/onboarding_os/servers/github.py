"""
GitHub server: repository introspection through a source host.

The handlers only shape what a SourceHost returns. The shipped host,
FixtureSourceHost, serves one sample repository from fixtures/github.yaml
for any owner/repo pair.
"""

from abc import ABC, abstractmethod
from collections import Counter
from typing import Any, Dict, List, Optional

from onboarding_os.core import HandlerError, ToolRegistry, ValidationError
from onboarding_os.fixtures import load_fixture

SERVER_NAME = "github-mcp"
MAX_CONTENT_CHARS = 3000
MAX_CONTRIBUTORS = 5
COMMIT_WINDOW = 20
DEFAULT_PR_COUNT = 5


class SourceHost(ABC):
    """Read-only view of a source-control hosting API."""

    @abstractmethod
    def get_repository(self, owner: str, repo: str) -> Dict[str, Any]:
        """Metadata: name, description, default_branch, stars."""

    @abstractmethod
    def list_root(self, owner: str, repo: str) -> List[Dict[str, Any]]:
        """Root entries as {"name", "type"} with type "dir" or "file"."""

    @abstractmethod
    def list_languages(self, owner: str, repo: str) -> Dict[str, int]:
        """Language name to byte count, largest first."""

    @abstractmethod
    def search_files(self, owner: str, repo: str, filename: str, limit: int = 10) -> List[Dict[str, str]]:
        """Files whose name contains filename, as {"path", "url"}."""

    @abstractmethod
    def get_content(self, owner: str, repo: str, path: str) -> Dict[str, Any]:
        """Entry at path as {"type", "content", "size"}; raises HandlerError if absent."""

    @abstractmethod
    def list_pulls(self, owner: str, repo: str, count: int) -> List[Dict[str, Any]]:
        """Most recently updated pull requests."""

    @abstractmethod
    def list_commits(self, owner: str, repo: str, path: str, limit: int) -> List[Dict[str, Any]]:
        """Newest-first commits touching path, as {"author", "message", "date"}."""


class FixtureSourceHost(SourceHost):
    """SourceHost backed by a static sample repository."""

    def __init__(self, data: Optional[Dict[str, Any]] = None):
        self.data = data if data is not None else load_fixture("github")

    def _html_url(self, owner: str, repo: str, path: str) -> str:
        branch = self.data["repository"].get("default_branch", "main")
        return f"https://github.com/{owner}/{repo}/blob/{branch}/{path}"

    def get_repository(self, owner, repo):
        meta = self.data["repository"]
        return {
            "name": repo,
            "description": meta.get("description"),
            "default_branch": meta.get("default_branch", "main"),
            "stars": meta.get("stars", 0),
        }

    def list_root(self, owner, repo):
        return list(self.data["repository"].get("tree", []))

    def list_languages(self, owner, repo):
        languages = self.data["repository"].get("languages", {})
        return dict(sorted(languages.items(), key=lambda item: -item[1]))

    def search_files(self, owner, repo, filename, limit=10):
        needle = filename.lower()
        paths = [p for p in self.data.get("files", {}) if needle in p.rsplit("/", 1)[-1].lower()]
        return [{"path": p, "url": self._html_url(owner, repo, p)} for p in paths[:limit]]

    def get_content(self, owner, repo, path):
        files = self.data.get("files", {})
        normalized = path.strip("/")
        if normalized in files:
            content = files[normalized]
            return {"type": "file", "content": content, "size": len(content.encode("utf-8"))}
        if any(p.startswith(normalized + "/") for p in files):
            return {"type": "dir", "content": None, "size": 0}
        raise HandlerError(f"Not Found: {path}")

    def list_pulls(self, owner, repo, count):
        return [
            dict(pr, url=f"https://github.com/{owner}/{repo}/pull/{pr['number']}")
            for pr in self.data.get("pull_requests", [])[:count]
        ]

    def list_commits(self, owner, repo, path, limit):
        normalized = path.strip("/")
        commits = [
            c for c in self.data.get("commits", [])
            if not normalized or c["path"] == normalized or c["path"].startswith(normalized + "/")
        ]
        return commits[:limit]


def explain_repo_structure(host: SourceHost, owner: str, repo: str) -> Dict[str, Any]:
    try:
        info = host.get_repository(owner, repo)
        contents = host.list_root(owner, repo)
        languages = list(host.list_languages(owner, repo))
    except HandlerError as e:
        raise HandlerError(f"Failed to analyze repo: {e.message}") from e

    folders = [item["name"] for item in contents if item["type"] == "dir"]
    files = [item["name"] for item in contents if item["type"] == "file"]
    lines = [f"📁 {repo}/"]
    lines += [f"├── 📁 {name}/" for name in folders]
    lines += [f"├── 📄 {name}" for name in files]

    return {
        "name": info["name"],
        "description": info.get("description") or "No description provided",
        "languages": languages,
        "primaryLanguage": languages[0] if languages else "Unknown",
        "folders": folders,
        "rootFiles": files,
        "defaultBranch": info["default_branch"],
        "stars": info["stars"],
        "hasReadme": "README.md" in files,
        "hasPackageJson": "package.json" in files,
        "structure": "\n".join(lines),
    }


def find_file(host: SourceHost, owner: str, repo: str, filename: str) -> Dict[str, Any]:
    try:
        matches = host.search_files(owner, repo, filename)
    except HandlerError as e:
        raise HandlerError(f"Failed to search: {e.message}") from e
    return {"found": len(matches), "files": matches}


def explain_code(host: SourceHost, owner: str, repo: str, path: str) -> Dict[str, Any]:
    """File contents capped at MAX_CONTENT_CHARS, with line count and a truncation flag."""
    try:
        entry = host.get_content(owner, repo, path)
    except HandlerError as e:
        raise HandlerError(f"Failed to get file: {e.message}") from e
    if entry["type"] != "file":
        raise HandlerError("Path is not a file")

    content = entry["content"]
    return {
        "path": path,
        "extension": path.rsplit(".", 1)[-1],
        "lines": len(content.split("\n")),
        "size": entry["size"],
        "content": content[:MAX_CONTENT_CHARS],
        "truncated": len(content) > MAX_CONTENT_CHARS,
    }


def get_recent_prs(host: SourceHost, owner: str, repo: str, count: int = DEFAULT_PR_COUNT) -> Dict[str, Any]:
    try:
        pulls = host.list_pulls(owner, repo, count)
    except HandlerError as e:
        raise HandlerError(f"Failed to get PRs: {e.message}") from e
    return {
        "pullRequests": [
            {
                "number": pr["number"],
                "title": pr["title"],
                "author": pr["author"],
                "state": pr["state"],
                "merged": bool(pr.get("merged")),
                "url": pr["url"],
            }
            for pr in pulls
        ]
    }


def who_owns_code(host: SourceHost, owner: str, repo: str, path: str) -> Dict[str, Any]:
    """Rank authors by commit count over the most recent commits touching path."""
    try:
        commits = host.list_commits(owner, repo, path, COMMIT_WINDOW)
    except HandlerError as e:
        raise HandlerError(f"Failed to get code owners: {e.message}") from e

    counts = Counter(c.get("author") or "Unknown" for c in commits)
    # most_common() keeps first-seen order among equal counts
    contributors = [
        {"author": author, "commits": n}
        for author, n in counts.most_common(MAX_CONTRIBUTORS)
    ]

    recent = None
    if commits:
        latest = commits[0]
        recent = {
            "author": latest.get("author") or "Unknown",
            "message": latest["message"].split("\n")[0],
            "date": latest["date"],
        }
    return {"path": path, "topContributors": contributors, "recentCommit": recent}


def _repo_schema(**extra: Dict[str, Any]) -> Dict[str, Any]:
    properties = {
        "owner": {"type": "string", "description": "Repository owner (username or org)"},
        "repo": {"type": "string", "description": "Repository name"},
    }
    properties.update(extra)
    required = ["owner", "repo"] + [k for k in extra if k != "count"]
    return {"type": "object", "properties": properties, "required": required}


def create_registry(host: Optional[SourceHost] = None) -> ToolRegistry:
    host = host or FixtureSourceHost()
    registry = ToolRegistry(SERVER_NAME)

    @registry.tool(
        "explain_repo_structure",
        "Analyze and explain the structure of a GitHub repository. "
        "Returns folder layout, languages used, and key files.",
        _repo_schema(),
    )
    def _explain_repo_structure(args):
        return explain_repo_structure(host, args["owner"], args["repo"])

    @registry.tool(
        "find_file",
        "Search for files by name in a repository",
        _repo_schema(filename={"type": "string", "description": "File name to search for (can be partial)"}),
    )
    def _find_file(args):
        return find_file(host, args["owner"], args["repo"], args["filename"])

    @registry.tool(
        "explain_code",
        "Get the contents of a file to explain what it does",
        _repo_schema(path={"type": "string", "description": "File path in the repository"}),
    )
    def _explain_code(args):
        return explain_code(host, args["owner"], args["repo"], args["path"])

    @registry.tool(
        "get_recent_prs",
        "Get recent pull requests to understand team patterns and recent changes",
        _repo_schema(count={"type": "number", "description": "Number of PRs to fetch (default 5)"}),
    )
    def _get_recent_prs(args):
        count = args.get("count", DEFAULT_PR_COUNT)
        if count < 1:
            raise ValidationError("Argument 'count' must be at least 1")
        return get_recent_prs(host, args["owner"], args["repo"], int(count))

    @registry.tool(
        "who_owns_code",
        "Find out who are the main contributors/owners of a specific file or directory",
        _repo_schema(path={"type": "string", "description": "File or directory path"}),
    )
    def _who_owns_code(args):
        return who_owns_code(host, args["owner"], args["repo"], args["path"])

    return registry
