"""
Markdown report text for single-photo and comparison results.
"""

from typing import Optional

from .models import ComparisonAnalysis, SingleImageAnalysis

_REGION_LABELS = {
    "upper": "Upper Body",
    "middle": "Core/Midsection",
    "lower": "Lower Body",
}

_NOTES = [
    "This analysis is based on visual changes and is not medical-grade assessment",
    "For accurate body composition analysis, consult fitness professionals",
    "Maintain consistent lighting, pose, and camera distance for better comparison",
    "Progress photos should be taken at the same time of day for consistency",
]


def _single_section(single: SingleImageAnalysis) -> list[str]:
    return [
        "### Single Photo Analysis",
        f"- **Muscle Definition Score**: {single.muscle_definition_score:.1f}/100",
        f"- **Image Quality**: {single.image_quality.quality.value} ({single.image_quality.score}/100)",
        f"- **Lighting Quality**: {single.lighting_quality.quality.value}",
        f"- **Edge Intensity**: {single.edge_intensity:.3f} (higher = more defined)",
        f"- **Contrast**: {single.contrast:.3f} (higher = more definition)",
        "",
    ]


def _comparison_section(comparison: ComparisonAnalysis) -> list[str]:
    lines = [
        "### Progress Comparison",
        f"- **Overall Progress Score**: {comparison.progress_score:.1f}/100",
        f"- **Total Change**: {comparison.change_percentage:.2f}%",
        f"- **Image Similarity**: {comparison.similarity * 100:.1f}%",
        "",
        "### Regional Analysis",
    ]
    for region, change in comparison.region_analysis.items():
        lines.append(
            f"- **{_REGION_LABELS[region.value]}**: {change.score}/100 ({change.change:.2f}% change)"
        )
    lines.append("")

    if comparison.recommendations:
        lines.append("### Recommendations")
        lines.extend(f"{i}. {rec}" for i, rec in enumerate(comparison.recommendations, start=1))
        lines.append("")

    return lines


def generate_analysis_report(
    single: Optional[SingleImageAnalysis] = None,
    comparison: Optional[ComparisonAnalysis] = None,
) -> str:
    """Render either or both analyses, always followed by the standard caveats."""
    lines = ["## Fitness Photo Analysis Report", ""]

    if single is not None:
        lines.extend(_single_section(single))
    if comparison is not None:
        lines.extend(_comparison_section(comparison))

    lines.append("### Important Notes")
    lines.extend(f"- {note}" for note in _NOTES)

    return "\n".join(lines) + "\n"
