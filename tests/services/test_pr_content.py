"""
Tests for pull request title, body and comment rendering.
"""

import pytest

from prompt_locator.services.models import Replacement
from prompt_locator.services.prompt_location.pr_content import (
    format_metric_value,
    numeric_metrics,
    render_description,
    render_metrics_comment,
    render_title,
)


@pytest.fixture
def replacements():
    return [
        Replacement(
            file_path="src/agent.py",
            original_content="a",
            new_content="b",
            explanation="Prompt replaced",
            strategy_name="full_prompt",
            validation_confidence=0.92,
            reasoning="Prompt constant passed to the chat API",
        ),
        Replacement(
            file_path="src/legacy.py",
            original_content="a",
            new_content="c",
            explanation="Degraded: simple string replacement (AI generation failed)",
            used_fallback=True,
            strategy_name="prefix",
            validation_confidence=0.5,
        ),
    ]


class TestMetricFormatting:
    """Test metric value formatting."""

    @pytest.mark.parametrize(
        ("key", "value", "expected"),
        [
            ("improvement", 0.15, "15%"),
            ("accuracy", 0.873, "87%"),
            ("responseTime", 412.6, "413ms"),
            ("latency_p95", 80, "80ms"),
            ("qualityScore", 8.456, "8.46/10"),
            ("tokens", 1200, "1200"),
            ("ratio", 0.25, "0.25"),
        ],
    )
    def test_format_metric_value(self, key, value, expected):
        assert format_metric_value(key, value) == expected

    def test_numeric_metrics_drops_non_numbers(self):
        metrics = {"improvement": 0.1, "passed": True, "note": "ok", "count": 3}
        assert numeric_metrics(metrics) == {"improvement": 0.1, "count": 3}


class TestTitle:
    """Test title selection."""

    def test_improvement_title(self):
        assert render_title({"improvement": 0.234}) == "Optimize AI prompt: 23% improvement"

    def test_summary_title_is_truncated(self):
        title = render_title({}, "word " * 40)
        assert title.startswith("Optimize AI prompt: word word")
        assert title.endswith("...")
        assert len(title) <= len("Optimize AI prompt: ") + 60

    def test_plain_title(self):
        assert render_title({}, "") == "Optimize AI prompt"


class TestDescription:
    """Test the pull request body."""

    def test_sections(self, replacements):
        body = render_description(
            "Old prompt", "New prompt", {"improvement": 0.15}, replacements, ["src/stale.py"],
        )

        assert "### Performance Metrics" in body
        assert "- **Improvement**: 15%" in body
        assert "### Files Changed (2)" in body
        assert "- `src/agent.py`\n" in body
        assert "`src/legacy.py` (direct text replacement, please review placeholders)" in body
        assert "### Skipped Files" in body
        assert "- `src/stale.py`" in body
        assert "```\nOld prompt\n```" in body
        assert "```\nNew prompt\n```" in body

    def test_without_metrics_or_conflicts(self, replacements):
        body = render_description("Old", "New", {}, replacements[:1])

        assert "Performance Metrics" not in body
        assert "Skipped Files" not in body


class TestMetricsComment:
    """Test the follow-up comment."""

    def test_comment(self, replacements):
        comment = render_metrics_comment(
            {"improvement": 0.15, "totalEvaluations": 40}, replacements,
        )

        assert "- **Prompt Locations Found**: 2" in comment
        assert "- **Search Strategies Used**: full_prompt, prefix" in comment
        assert "- **AI Analysis Confidence**: 71%" in comment
        assert "**src/agent.py**" in comment
        assert "- Analysis: N/A" in comment
        assert "*Metrics calculated from 40 evaluations.*" in comment

    def test_comment_without_evaluation_count(self, replacements):
        comment = render_metrics_comment({"improvement": 0.15}, replacements)

        assert "*Metrics calculated from multiple evaluations.*" in comment
