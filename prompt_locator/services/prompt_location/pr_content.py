"""Markdown for the pull request title, body and metrics comment."""

from collections.abc import Mapping
from typing import Any

from prompt_locator.services.models import Replacement

TITLE_SUMMARY_LENGTH = 60


def format_percentage(value: float) -> str:
    """0.15 -> '15%'."""
    return f"{round(value * 100)}%"


def format_metric_value(key: str, value: float) -> str:
    lowered = key.lower()
    if any(word in lowered for word in ("percentage", "accuracy", "improvement")):
        return format_percentage(value)
    if "time" in lowered or "latency" in lowered:
        return f"{round(value)}ms"
    if "score" in lowered:
        return f"{round(value, 2):g}/10"
    return f"{value:g}" if isinstance(value, float) else str(value)


def numeric_metrics(metrics: Mapping[str, Any]) -> dict[str, float]:
    return {
        key: value
        for key, value in metrics.items()
        if isinstance(value, int | float) and not isinstance(value, bool)
    }


def _label(key: str) -> str:
    return key[:1].upper() + key[1:]


def render_title(metrics: Mapping[str, Any], new_text: str = "") -> str:
    improvement = numeric_metrics(metrics).get("improvement")
    if improvement is not None:
        return f"Optimize AI prompt: {format_percentage(improvement)} improvement"
    summary = " ".join(new_text.split())
    if len(summary) > TITLE_SUMMARY_LENGTH:
        summary = summary[: TITLE_SUMMARY_LENGTH - 3].rstrip() + "..."
    return f"Optimize AI prompt: {summary}" if summary else "Optimize AI prompt"


def render_description(
    original_text: str,
    new_text: str,
    metrics: Mapping[str, Any],
    replacements: list[Replacement],
    conflicts: list[str] | None = None,
) -> str:
    """
    Render the pull request body.

    Args:
        original_text: Prompt before optimisation
        new_text: Prompt after optimisation
        metrics: Caller metrics; only numeric values are shown
        replacements: Files committed to the branch
        conflicts: Files skipped because their remote content changed

    Returns:
        Markdown body
    """
    sections = [
        "## Automated Prompt Optimization",
        "",
        "This pull request replaces an AI prompt with an optimized version.",
    ]

    values = numeric_metrics(metrics)
    if values:
        sections += ["", "### Performance Metrics", ""]
        sections += [
            f"- **{_label(key)}**: {format_metric_value(key, value)}"
            for key, value in values.items()
        ]

    sections += ["", f"### Files Changed ({len(replacements)})", ""]
    for replacement in replacements:
        line = f"- `{replacement.file_path}`"
        if replacement.used_fallback:
            line += " (direct text replacement, please review placeholders)"
        sections.append(line)

    if conflicts:
        sections += [
            "",
            "### Skipped Files",
            "",
            "These files changed after they were read and were left untouched:",
            "",
        ]
        sections += [f"- `{path}`" for path in conflicts]

    sections += [
        "",
        "### Prompt Changes",
        "",
        "<details>",
        "<summary>View Original Prompt</summary>",
        "",
        "```",
        original_text,
        "```",
        "",
        "</details>",
        "",
        "<details>",
        "<summary>View Optimized Prompt</summary>",
        "",
        "```",
        new_text,
        "```",
        "",
        "</details>",
    ]
    return "\n".join(sections)


def render_metrics_comment(
    metrics: Mapping[str, Any],
    replacements: list[Replacement],
) -> str:
    lines = ["## Detailed Performance Metrics", ""]
    lines += [
        f"- **{_label(key)}**: {format_metric_value(key, value)}"
        for key, value in numeric_metrics(metrics).items()
    ]

    strategies = list(dict.fromkeys(r.strategy_name for r in replacements if r.strategy_name))
    confidences = [
        r.validation_confidence for r in replacements if r.validation_confidence is not None
    ]
    lines += [
        "",
        "### Optimization Details",
        "",
        f"- **Prompt Locations Found**: {len(replacements)}",
        f"- **Search Strategies Used**: {', '.join(strategies) or 'N/A'}",
    ]
    if confidences:
        average = sum(confidences) / len(confidences)
        lines.append(f"- **AI Analysis Confidence**: {format_percentage(average)}")

    lines += ["", "### Files Modified"]
    for replacement in replacements:
        confidence = (
            format_percentage(replacement.validation_confidence)
            if replacement.validation_confidence is not None
            else "N/A"
        )
        lines += [
            "",
            f"**{replacement.file_path}**",
            f"- Strategy: {replacement.strategy_name or 'N/A'}",
            f"- Confidence: {confidence}",
            f"- Analysis: {replacement.reasoning or 'N/A'}",
        ]

    evaluations = metrics.get("totalEvaluations") or metrics.get("total_evaluations")
    lines += [
        "",
        "---",
        "",
        f"*Metrics calculated from {evaluations or 'multiple'} evaluations.*",
    ]
    return "\n".join(lines)
