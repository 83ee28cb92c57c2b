"""Fixed trigger tables that turn a question into search keywords.

Each rule is ``(triggers, keywords)``: if any trigger is a substring of the
lowercased question, its keywords are added. Rules are applied in table
order and duplicates keep their first position.
"""

from __future__ import annotations

from collections.abc import Sequence

KeywordRule = tuple[tuple[str, ...], tuple[str, ...]]

# Ranks repository paths.
REPO_KEYWORD_RULES: tuple[KeywordRule, ...] = (
    (("component", "ui"), ("component", "components", "ui", "view")),
    (("module", "generate"), ("module", "generator", "generate", "template")),
    (("config", "setup"), ("config", "setup", "configuration")),
    (("service", "api"), ("service", "api", "endpoint")),
    (("store", "redux", "state"), ("store", "redux", "state", "slice")),
    (("route", "navigation"), ("route", "router", "navigation", "page")),
    (("test", "spec"), ("test", "spec", "jest")),
    (("hook", "custom"), ("hook", "hooks", "custom")),
)

# Selects documentation sub-pages by URL.
DOC_KEYWORD_RULES: tuple[KeywordRule, ...] = (
    (
        (
            "setup",
            "install",
            "new project",
            "initialize",
            "create project",
            "build project",
            "getting started",
            "start",
        ),
        ("getting-started", "getting_started", "start", "setup", "install", "initialize"),
    ),
    (("module", "generate"), ("module", "generate", "generator")),
    (("component",), ("component", "components")),
    (("architecture", "structure"), ("architecture", "structure", "overview")),
)


def derive_keywords(question: str, rules: Sequence[KeywordRule]) -> list[str]:
    lowered = question.lower()
    keywords: dict[str, None] = {}
    for triggers, words in rules:
        if any(trigger in lowered for trigger in triggers):
            for word in words:
                keywords.setdefault(word)
    return list(keywords)


def derive_repo_keywords(question: str) -> list[str]:
    return derive_keywords(question, REPO_KEYWORD_RULES)


def derive_doc_keywords(question: str) -> list[str]:
    return derive_keywords(question, DOC_KEYWORD_RULES)
