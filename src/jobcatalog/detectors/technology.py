"""Regex technology tagger and category lookup.

The tagger recognizes a fixed table of canonical technologies.  Output
is the sorted list of canonical names, so two postings that mention the
same stack in different words produce identical tag lists.
"""

from __future__ import annotations

import re
from typing import Final

from jobcatalog.detectors.base import TechnologyTagger

# Canonical name -> pattern.  Patterns run on the raw text with IGNORECASE.
TECHNOLOGY_PATTERNS: Final[dict[str, re.Pattern[str]]] = {
    name: re.compile(pattern, re.IGNORECASE)
    for name, pattern in (
        ("React", r"\breact(?:js|\.js)?\b"),
        ("Vue", r"\bvue(?:js|\.js)?\b"),
        ("Angular", r"\bangular(?:js)?\b"),
        ("Node.js", r"\bnode(?:\.js|js)?\b"),
        ("TypeScript", r"\btypescript\b"),
        ("JavaScript", r"\bjavascript\b"),
        ("Python", r"\bpython\b"),
        ("Java", r"\bjava\b(?!script)"),
        ("Spring Boot", r"\bspring\s*boot\b"),
        ("Django", r"\bdjango\b"),
        ("FastAPI", r"\bfastapi\b"),
        (".NET", r"(?:\b(?:dotnet|asp\.?net)\b|\.net\b)"),
        ("Go", r"\bgolang\b|\bgo(?=\s+(?:lang|developer|engineer|backend|programming)\b)"),
        ("PHP", r"\bphp\b"),
        ("Docker", r"\bdocker\b"),
        ("Kubernetes", r"\bkubernetes\b"),
        ("AWS", r"\baws\b"),
        ("Azure", r"\bazure\b"),
        ("GCP", r"\bgcp\b"),
        ("PostgreSQL", r"\bpostgresql\b"),
        ("MongoDB", r"\bmongodb\b"),
        ("Redis", r"\bredis\b"),
        ("GraphQL", r"\bgraphql\b"),
        ("REST API", r"\brest\s*api\b"),
        ("Machine Learning", r"\b(?:machine\s*learning|ml)\b"),
        ("TensorFlow", r"\btensorflow\b"),
        ("PyTorch", r"\bpytorch\b"),
    )
}

# Lowercased name -> category.  Anything absent is "other".
_CATEGORY_MAP: Final[dict[str, str]] = {
    # frontend
    "react": "frontend",
    "reactjs": "frontend",
    "vue": "frontend",
    "vuejs": "frontend",
    "angular": "frontend",
    "svelte": "frontend",
    "typescript": "frontend",
    "javascript": "frontend",
    "ts": "frontend",
    "js": "frontend",
    # backend
    "node": "backend",
    "nodejs": "backend",
    "node.js": "backend",
    "python": "backend",
    "java": "backend",
    "spring boot": "backend",
    "django": "backend",
    "fastapi": "backend",
    "go": "backend",
    "golang": "backend",
    "php": "backend",
    "ruby": "backend",
    ".net": "backend",
    "dotnet": "backend",
    "c#": "backend",
    "csharp": "backend",
    "graphql": "backend",
    "rest api": "backend",
    # devops
    "docker": "devops",
    "kubernetes": "devops",
    "k8s": "devops",
    "aws": "devops",
    "azure": "devops",
    "gcp": "devops",
    "jenkins": "devops",
    "terraform": "devops",
    "ansible": "devops",
    # database
    "postgresql": "database",
    "postgres": "database",
    "mongodb": "database",
    "mongo": "database",
    "mysql": "database",
    "redis": "database",
    "elasticsearch": "database",
    # ai / ml
    "tensorflow": "ai-ml",
    "pytorch": "ai-ml",
    "machine learning": "ai-ml",
    "deep learning": "ai-ml",
    "ml": "ai-ml",
}

TECHNOLOGY_CATEGORIES: Final[frozenset[str]] = frozenset(
    {*_CATEGORY_MAP.values(), "other"}
)


def categorize(name: str) -> str:
    """Return the category of a technology name.

    >>> categorize(" Node.js ")
    'backend'
    >>> categorize("COBOL")
    'other'
    """
    return _CATEGORY_MAP.get(name.strip().lower(), "other")


def detect_technologies(text: str) -> list[str]:
    """Synchronous core of :class:`RegexTechnologyTagger`."""
    if not text:
        return []
    return sorted(name for name, pattern in TECHNOLOGY_PATTERNS.items() if pattern.search(text))


class RegexTechnologyTagger(TechnologyTagger):
    """Default tagger backed by :data:`TECHNOLOGY_PATTERNS`."""

    async def tag(self, text: str) -> list[str]:
        return detect_technologies(text)
