"""
Docs server: search over the internal documentation store.

Scoring, per lower-cased query token:
- +10 when the token appears in the title
- +5 when any keyword contains the token
- +1 per occurrence in title and content
"""

from typing import Any, Dict, List, Optional, Sequence

from onboarding_os.core import HandlerError, ToolRegistry
from onboarding_os.fixtures import load_fixture

SERVER_NAME = "docs-mcp"
CATEGORIES = ["onboarding", "architecture", "standards", "faq"]
MAX_RESULTS = 5
EXCERPT_LENGTH = 200

SEARCH_DOCS_SCHEMA = {
    "type": "object",
    "properties": {
        "query": {"type": "string", "description": "Search query"},
        "category": {
            "type": "string",
            "description": "Filter by category (onboarding, architecture, standards, faq)",
            "enum": CATEGORIES,
        },
    },
    "required": ["query"],
}

GET_DOCUMENT_SCHEMA = {
    "type": "object",
    "properties": {
        "docId": {"type": "string", "description": "Document ID"},
    },
    "required": ["docId"],
}


def score_document(doc: Dict[str, Any], tokens: Sequence[str]) -> int:
    """Relevance of one document for the given query tokens."""
    title = doc["title"].lower()
    keywords = [k.lower() for k in doc.get("keywords", [])]
    text = f"{doc['title']} {doc['content']}".lower()

    score = 0
    for token in tokens:
        if token in title:
            score += 10
        if any(token in keyword for keyword in keywords):
            score += 5
        score += text.count(token)
    return score


def search_docs(
    query: str,
    category: Optional[str] = None,
    documents: Optional[List[Dict[str, Any]]] = None,
) -> List[Dict[str, Any]]:
    """
    Rank documents against a free-text query.

    Args:
        query: Whitespace-separated search terms
        category: Only consider documents in this category
        documents: Document set to search (defaults to the docs fixture)

    Returns:
        Up to five matches, best first, each with an excerpt and score.
        An empty or whitespace-only query has no tokens and matches nothing;
        use list_all_docs to enumerate every document.
    """
    if documents is None:
        documents = load_fixture("docs")["documents"]
    tokens = query.lower().split()

    candidates = []
    for doc in documents:
        if category and doc["category"] != category:
            continue
        haystack = f"{doc['title']} {doc['content']} {' '.join(doc.get('keywords', []))}".lower()
        if any(token in haystack for token in tokens):
            candidates.append((score_document(doc, tokens), doc))

    # sorted() is stable, so equal scores keep store order
    ranked = sorted(candidates, key=lambda item: -item[0])[:MAX_RESULTS]
    return [
        {
            "id": doc["id"],
            "title": doc["title"],
            "category": doc["category"],
            "excerpt": doc["content"][:EXCERPT_LENGTH] + "...",
            "score": score,
        }
        for score, doc in ranked
    ]


def get_document(doc_id: str, documents: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    """
    Return one document in full.

    Raises:
        HandlerError: If no document has the given id
    """
    if documents is None:
        documents = load_fixture("docs")["documents"]
    for doc in documents:
        if doc["id"] == doc_id:
            return {
                "id": doc["id"],
                "title": doc["title"],
                "category": doc["category"],
                "content": doc["content"],
            }
    raise HandlerError(f"Document not found: {doc_id}")


def create_registry() -> ToolRegistry:
    """Build the docs server's tool registry over a freshly loaded store."""
    fixture = load_fixture("docs")
    documents = fixture["documents"]
    checklist = fixture["checklist"]
    registry = ToolRegistry(SERVER_NAME)

    @registry.tool(
        "search_docs",
        "Search internal documentation for answers to questions",
        SEARCH_DOCS_SCHEMA,
    )
    def _search_docs(args):
        return search_docs(args["query"], args.get("category"), documents)

    @registry.tool(
        "get_document",
        "Get full content of a specific document",
        GET_DOCUMENT_SCHEMA,
    )
    def _get_document(args):
        return get_document(args["docId"], documents)

    @registry.tool(
        "get_onboarding_checklist",
        "Get the step-by-step onboarding checklist for new developers",
    )
    def _get_onboarding_checklist(args):
        return checklist

    @registry.tool("list_all_docs", "List all available documentation")
    def _list_all_docs(args):
        return [
            {"id": d["id"], "title": d["title"], "category": d["category"]}
            for d in documents
        ]

    return registry
