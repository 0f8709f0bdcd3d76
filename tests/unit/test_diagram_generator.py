"""Tests for the deterministic mermaid diagram generator."""

from codebrief.services.diagram_generator import (
    diagram_section,
    generate_simple_mermaid,
    infer_directory_features,
)

TREE = "\n".join(
    [
        "📁 **app**",
        "```",
        "├── 📁 api",
        "├── 📁 auth",
        "├── 📁 models",
        "├── 📁 pages",
        "└── 📄 index.js",
        "```",
    ]
)


def test_feature_subgraphs_are_chained():
    mermaid = generate_simple_mermaid("", ["Auth", "Dashboard"])

    assert mermaid.startswith("graph TD\n")
    assert 'subgraph Feature0["Auth"]' in mermaid
    assert "Feature1_A[Dashboard Component]" in mermaid
    assert "Feature0 --> Feature1" in mermaid


def test_at_most_five_features_and_labels_cut():
    features = [f"Feature number {i} with a very long descriptive name" for i in range(8)]

    mermaid = generate_simple_mermaid("", features)

    assert mermaid.count("subgraph") == 5
    assert 'subgraph Feature0["Feature number 0 with a very l"]' in mermaid
    assert "Feature4 --> Feature5" not in mermaid


def test_directory_keywords_when_no_features():
    assert infer_directory_features(TREE) == ["API", "Authentication", "Database", "UI Components"]

    mermaid = generate_simple_mermaid(TREE, [])

    assert "Feature0_A[API Module]" in mermaid
    assert mermaid.count("subgraph") == 4


def test_placeholder_when_nothing_matches():
    mermaid = generate_simple_mermaid("📁 **app**\n```\n└── 📄 main.c\n```", None)

    assert 'subgraph App["Application"]' in mermaid
    assert "A[Main Module]" in mermaid


def test_diagram_section_wraps_in_fence():
    section = diagram_section("graph TD\n    A[X]\n")

    assert section == "## Architecture Diagram\n\n```mermaid\ngraph TD\n    A[X]\n```"
