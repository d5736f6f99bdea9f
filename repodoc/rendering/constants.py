"""Shared constants for the documentation hierarchy."""

from __future__ import annotations

INDEX_PAGE = "README"
TECHNICAL_INDEX = "technical/README"
ARCHITECTURE_PAGE = "technical/architecture"
CONFIGURATION_PAGE = "technical/configuration"
DEPLOYMENT_PAGE = "technical/deployment"
COMPONENTS_PREFIX = "technical/components"
TUTORIAL_INDEX = "tutorial/README"
GETTING_STARTED_PAGE = "tutorial/getting-started"
BASIC_USAGE_PAGE = "tutorial/basic-usage"
ADVANCED_FEATURES_PAGE = "tutorial/advanced-features"
TROUBLESHOOTING_PAGE = "tutorial/troubleshooting"
FAQ_PAGE = "tutorial/faq"

TECHNICAL_PAGES: tuple[str, ...] = (
    ARCHITECTURE_PAGE,
    CONFIGURATION_PAGE,
    DEPLOYMENT_PAGE,
)

TUTORIAL_PAGES: tuple[str, ...] = (
    GETTING_STARTED_PAGE,
    BASIC_USAGE_PAGE,
    ADVANCED_FEATURES_PAGE,
    TROUBLESHOOTING_PAGE,
    FAQ_PAGE,
)

PAGE_TITLES: dict[str, str] = {
    TECHNICAL_INDEX: "Technical Reference",
    ARCHITECTURE_PAGE: "Architecture",
    CONFIGURATION_PAGE: "Configuration",
    DEPLOYMENT_PAGE: "Deployment",
    TUTORIAL_INDEX: "Tutorial",
    GETTING_STARTED_PAGE: "Getting Started",
    BASIC_USAGE_PAGE: "Basic Usage",
    ADVANCED_FEATURES_PAGE: "Advanced Features",
    TROUBLESHOOTING_PAGE: "Troubleshooting",
    FAQ_PAGE: "FAQ",
}

CODE_LANGUAGES: dict[str, str] = {
    "python": "python",
    "javascript": "javascript",
    "typescript": "typescript",
    "java": "java",
    "go": "go",
    "rust": "rust",
    "ruby": "ruby",
}


def component_page(abstraction_id: str) -> str:
    return f"{COMPONENTS_PREFIX}/{abstraction_id}"


__all__ = [
    "ADVANCED_FEATURES_PAGE",
    "ARCHITECTURE_PAGE",
    "BASIC_USAGE_PAGE",
    "CODE_LANGUAGES",
    "COMPONENTS_PREFIX",
    "CONFIGURATION_PAGE",
    "DEPLOYMENT_PAGE",
    "FAQ_PAGE",
    "GETTING_STARTED_PAGE",
    "INDEX_PAGE",
    "PAGE_TITLES",
    "TECHNICAL_INDEX",
    "TECHNICAL_PAGES",
    "TROUBLESHOOTING_PAGE",
    "TUTORIAL_INDEX",
    "TUTORIAL_PAGES",
    "component_page",
]
