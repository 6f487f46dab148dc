"""Markdown bodies for outbound tribunal requests."""

from dataclasses import dataclass

from brenner.core.models import HypothesisCard, Phase, Role
from brenner.protocol.roles import display_name


@dataclass(frozen=True)
class RoleBrief:
    purpose: str
    operators: tuple[str, ...]


ROLE_BRIEFS: dict[Role, RoleBrief] = {
    Role.HYPOTHESIS_GENERATOR: RoleBrief(
        purpose="Generate hypotheses by hunting paradoxes and importing cross-domain patterns.",
        operators=("⊘ Level-Split", "⊕ Cross-Domain", "◊ Paradox-Hunt"),
    ),
    Role.TEST_DESIGNER: RoleBrief(
        purpose="Design discriminative tests with potency controls.",
        operators=("✂ Exclusion-Test", "⌂ Materialize", "⟂ Object-Transpose", "🎭 Potency-Check"),
    ),
    Role.ADVERSARIAL_CRITIC: RoleBrief(
        purpose="Attack the framing, check scale constraints, quarantine anomalies.",
        operators=("ΔE Exception-Quarantine", "† Theory-Kill", "⊞ Scale-Check"),
    ),
}


def _bullets(lines: list[str], title: str, items) -> None:
    if not items:
        return
    lines.append(f"**{title}**:")
    lines.extend(f"- {item}" for item in items)
    lines.append("")


def format_hypothesis(hypothesis: HypothesisCard) -> str:
    lines = [
        "## Hypothesis Under Review",
        "",
        f"**ID**: {hypothesis.id}",
        "",
        f"**Statement**: {hypothesis.statement}",
        "",
        f"**Mechanism**: {hypothesis.mechanism}",
        "",
        f"**Domain**: {', '.join(hypothesis.domain) if hypothesis.domain else 'Not specified'}",
        "",
    ]
    _bullets(lines, "Would Falsify", hypothesis.impossible_if_true)
    _bullets(lines, "Predictions if True", hypothesis.predictions_if_true)
    _bullets(lines, "Predictions if False", hypothesis.predictions_if_false)
    _bullets(
        lines,
        "Identified Confounds",
        [
            f"{c.get('name', 'Unnamed')}: {c.get('description', '')}" if isinstance(c, dict) else c
            for c in hypothesis.confounds
        ],
    )
    _bullets(lines, "Explicit Assumptions", hypothesis.assumptions)
    return "\n".join(lines)


def _level_split(result: dict) -> list[str]:
    lines = [f"- Applied at: {result.get('applied_at', 'unknown')}"]
    if result.get("conflation_detected"):
        lines.append(f"- Conflation detected: {result.get('conflation_description') or 'Yes'}")
    for level in result.get("levels") or []:
        lines.append(
            f"  - **{level.get('name')}** ({level.get('level_type')}): {level.get('description')}"
        )
    return lines


def _exclusion_test(result: dict) -> list[str]:
    lines = []
    for test in result.get("designed_tests") or []:
        lines.append(f"- **{test.get('name')}**: {test.get('procedure')}")
        lines.append(f"  Could exclude: {', '.join(test.get('could_exclude') or [])}")
    return lines


def _object_transpose(result: dict) -> list[str]:
    lines = [f"- Original system: {result.get('original_system')}"]
    if result.get("selected_system"):
        lines.append(f"- Selected alternative: {result['selected_system']}")
        lines.append(f"- Rationale: {result.get('selection_rationale') or 'Not specified'}")
    return lines


def _scale_check(result: dict) -> list[str]:
    lines = [f"- Plausible: {'Yes' if result.get('plausible') else 'No'}"]
    for calc in result.get("calculations") or []:
        lines.append(
            f"  - {calc.get('name')}: {calc.get('result')} {calc.get('units')} "
            f"→ {calc.get('implication')}"
        )
    ruled_out = result.get("ruled_out_by_scale") or []
    if ruled_out:
        lines.append(f"- Ruled out by scale: {', '.join(ruled_out)}")
    return lines


OPERATOR_SECTIONS = (
    (Phase.LEVEL_SPLIT, "## Level Split Results (⊘)", _level_split),
    (Phase.EXCLUSION_TEST, "## Exclusion Test Results (✂)", _exclusion_test),
    (Phase.OBJECT_TRANSPOSE, "## Object Transpose Results (⟂)", _object_transpose),
    (Phase.SCALE_CHECK, "## Scale Check Results (⊞)", _scale_check),
)


def format_operator_results(results: dict[str, list] | None) -> str:
    """Render operator results keyed by operator phase. Empty string when there are none."""
    sections: list[str] = []
    for phase, heading, render in OPERATOR_SECTIONS:
        entries = (results or {}).get(phase.value) or []
        if not entries:
            continue
        sections.append(heading)
        for entry in entries:
            sections.extend(render(entry) if isinstance(entry, dict) else [f"- {entry}"])
        sections.append("")
    return "\n".join(sections)


def build_agent_prompt(
    role: Role, hypothesis: HypothesisCard, operator_results: dict[str, list] | None = None
) -> str:
    role = Role(role)
    brief = ROLE_BRIEFS[role]
    name = display_name(role)
    parts = [
        "# Tribunal Analysis Request",
        "",
        f"## Your Role: {name}",
        "",
        brief.purpose,
        "",
        f"**Primary Operators**: {', '.join(brief.operators)}",
        "",
        "---",
        "",
        format_hypothesis(hypothesis),
    ]
    operator_context = format_operator_results(operator_results)
    if operator_context.strip():
        parts.extend(["---", "", operator_context])
    parts.extend(
        [
            "---",
            "",
            "## Your Task",
            "",
            f"As the {name}, please analyze this hypothesis according to your mandate.",
            "",
            "Provide your analysis in markdown format. Be specific and actionable.",
            "",
        ]
    )
    return "\n".join(parts)
