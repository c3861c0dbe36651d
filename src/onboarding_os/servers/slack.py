"""Slack server: team directory, channel list and past discussion search."""

from typing import Any, Dict, List

from onboarding_os.core import ToolRegistry
from onboarding_os.fixtures import load_fixture

SERVER_NAME = "slack-mcp"
MAX_DISCUSSIONS = 5
WELCOME_CHANNEL = "#new-joiners"


def _availability(member: Dict[str, Any], verbose: bool = True) -> str:
    if verbose:
        return "🟢 Available" if member["available"] else "🔴 Away"
    return "🟢" if member["available"] else "🔴"


def find_expert(topic: str, members: List[Dict[str, Any]], fallback_channels: List[str]) -> Dict[str, Any]:
    """
    Find members whose expertise overlaps the topic.

    An expertise entry matches when it contains the topic or the topic
    contains it (case-insensitive). Members are ranked by matching entries.
    """
    topic_lower = topic.lower()
    scored = []
    for member in members:
        score = sum(
            1
            for exp in member["expertise"]
            if topic_lower in exp.lower() or exp.lower() in topic_lower
        )
        if score > 0:
            scored.append((score, member))

    if not scored:
        return {
            "found": False,
            "suggestion": "Try asking in #dev-help channel",
            "channels": list(fallback_channels),
        }

    scored.sort(key=lambda item: -item[0])
    return {
        "found": True,
        "experts": [
            {
                "name": m["name"],
                "username": f"@{m['username']}",
                "role": m["role"],
                "available": _availability(m),
                "expertise": ", ".join(m["expertise"]),
                "channels": ", ".join(m["channels"]),
            }
            for _, m in scored
        ],
        "tip": "You can reach them in their channels or send a DM",
    }


def search_discussions(query: str, discussions: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Rank past Q&A threads by how many query tokens they contain."""
    tokens = query.lower().split()
    scored = []
    for discussion in discussions:
        text = f"{discussion['question']} {discussion['answer']}".lower()
        relevance = sum(1 for token in tokens if token in text)
        if relevance > 0:
            scored.append((relevance, discussion))
    scored.sort(key=lambda item: -item[0])

    return {
        "found": len(scored),
        "discussions": [
            {
                "channel": d["channel"],
                "question": d["question"],
                "answer": d["answer"],
                "author": f"@{d['author']}",
                "date": d["date"],
                "helpfulVotes": d["helpful"],
            }
            for _, d in scored[:MAX_DISCUSSIONS]
        ],
    }


def welcome_message(name: str) -> Dict[str, Any]:
    """Draft the welcome post; nothing is sent."""
    message = (
        f"👋 Welcome to the team, {name}!\n"
        "\n"
        "Here's what you should do first:\n"
        "1. Join these channels: #dev-team, #dev-help\n"
        "2. Read the Getting Started guide\n"
        "3. Your onboarding buddy will reach out soon!\n"
        "\n"
        "If you have questions, don't hesitate to ask in #dev-help.\n"
        "We're excited to have you! 🎉"
    )
    return {
        "action": "WOULD_POST_MESSAGE",
        "channel": WELCOME_CHANNEL,
        "message": message,
        "posted": False,
        "note": "Posting requires approval; nothing was sent to Slack",
    }


def create_registry() -> ToolRegistry:
    fixture = load_fixture("slack")
    members = fixture["members"]
    channels = fixture["channels"]
    discussions = fixture["discussions"]
    registry = ToolRegistry(SERVER_NAME)

    @registry.tool(
        "find_expert",
        "Find team members who are experts on a specific topic",
        {
            "type": "object",
            "properties": {
                "topic": {
                    "type": "string",
                    "description": 'Topic or technology to find an expert for (e.g., "React", "database", "deployment")',
                },
            },
            "required": ["topic"],
        },
    )
    def _find_expert(args):
        return find_expert(args["topic"], members, fixture["fallback_channels"])

    @registry.tool(
        "search_discussions",
        "Search past Slack discussions for answers to common questions",
        {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": 'Search query (e.g., "local setup", "authentication")',
                },
            },
            "required": ["query"],
        },
    )
    def _search_discussions(args):
        return search_discussions(args["query"], discussions)

    @registry.tool(
        "list_channels",
        "List available Slack channels the new developer should join",
    )
    def _list_channels(args):
        return {
            "channels": [
                {"name": f"#{ch['name']}", "description": ch["description"], "members": ch["members"]}
                for ch in channels
            ],
            "recommended": list(fixture["recommended_channels"]),
        }

    @registry.tool(
        "send_welcome_message",
        "⚠️ REQUIRES APPROVAL: Send a welcome message to the #new-joiners channel",
        {
            "type": "object",
            "properties": {
                "name": {"type": "string", "description": "Name of the new team member"},
            },
            "required": ["name"],
        },
    )
    def _send_welcome_message(args):
        return welcome_message(args["name"])

    @registry.tool("get_team_contacts", "Get list of key team contacts and their roles")
    def _get_team_contacts(args):
        return {
            "contacts": [
                {
                    "name": m["name"],
                    "username": f"@{m['username']}",
                    "role": m["role"],
                    "expertise": ", ".join(m["expertise"][:3]),
                    "available": _availability(m, verbose=False),
                }
                for m in members
            ]
        }

    return registry
