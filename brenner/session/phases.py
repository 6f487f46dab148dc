"""Phase metadata and the static jump table."""

from brenner.core.models import Phase

PHASE_ORDER: tuple[Phase, ...] = tuple(Phase)

PHASE_NAMES: dict[Phase, str] = {
    Phase.INTAKE: "Hypothesis Intake",
    Phase.SHARPENING: "Hypothesis Sharpening",
    Phase.LEVEL_SPLIT: "Level Split",
    Phase.EXCLUSION_TEST: "Exclusion Test",
    Phase.OBJECT_TRANSPOSE: "Object Transpose",
    Phase.SCALE_CHECK: "Scale Check",
    Phase.AGENT_DISPATCH: "Agent Dispatch",
    Phase.SYNTHESIS: "Synthesis",
    Phase.EVIDENCE_GATHERING: "Evidence Gathering",
    Phase.REVISION: "Revision",
    Phase.COMPLETE: "Complete",
}

PHASE_DESCRIPTIONS: dict[Phase, str] = {
    Phase.INTAKE: "Enter your initial hypothesis and research question.",
    Phase.SHARPENING: "Refine your hypothesis with predictions and falsification conditions.",
    Phase.LEVEL_SPLIT: "Identify different levels of explanation that might be conflated.",
    Phase.EXCLUSION_TEST: "Design tests that could definitively rule out your hypothesis.",
    Phase.OBJECT_TRANSPOSE: "Consider alternative experimental systems or reference frames.",
    Phase.SCALE_CHECK: "Verify physical and mathematical plausibility.",
    Phase.AGENT_DISPATCH: "Send the hypothesis to the agents for analysis.",
    Phase.SYNTHESIS: "Synthesize agent responses and identify consensus.",
    Phase.EVIDENCE_GATHERING: "Execute tests and collect evidence.",
    Phase.REVISION: "Revise the hypothesis based on evidence.",
    Phase.COMPLETE: "Session complete. Generate the research brief.",
}

OPERATOR_SYMBOLS: dict[Phase, str] = {
    Phase.LEVEL_SPLIT: "⊘",
    Phase.EXCLUSION_TEST: "✂",
    Phase.OBJECT_TRANSPOSE: "⟂",
    Phase.SCALE_CHECK: "⊞",
}

# Where GO_TO_PHASE may jump, independent of the event used to get there
ALLOWED_JUMPS: dict[Phase, tuple[Phase, ...]] = {
    Phase.INTAKE: (Phase.SHARPENING,),
    Phase.SHARPENING: (Phase.LEVEL_SPLIT, Phase.EXCLUSION_TEST, Phase.AGENT_DISPATCH),
    Phase.LEVEL_SPLIT: (
        Phase.EXCLUSION_TEST,
        Phase.OBJECT_TRANSPOSE,
        Phase.SCALE_CHECK,
        Phase.AGENT_DISPATCH,
    ),
    Phase.EXCLUSION_TEST: (Phase.OBJECT_TRANSPOSE, Phase.SCALE_CHECK, Phase.AGENT_DISPATCH),
    Phase.OBJECT_TRANSPOSE: (Phase.SCALE_CHECK, Phase.AGENT_DISPATCH),
    Phase.SCALE_CHECK: (Phase.AGENT_DISPATCH,),
    Phase.AGENT_DISPATCH: (Phase.SYNTHESIS, Phase.EVIDENCE_GATHERING),
    Phase.SYNTHESIS: (Phase.EVIDENCE_GATHERING, Phase.REVISION, Phase.COMPLETE),
    Phase.EVIDENCE_GATHERING: (Phase.REVISION, Phase.SYNTHESIS),
    Phase.REVISION: (Phase.AGENT_DISPATCH, Phase.SYNTHESIS, Phase.COMPLETE),
    Phase.COMPLETE: (),
}

SIMPLIFIED_PHASES: dict[Phase, str] = {
    Phase.INTAKE: "intake",
    Phase.SHARPENING: "refinement",
    Phase.LEVEL_SPLIT: "refinement",
    Phase.EXCLUSION_TEST: "refinement",
    Phase.OBJECT_TRANSPOSE: "refinement",
    Phase.SCALE_CHECK: "refinement",
    Phase.AGENT_DISPATCH: "testing",
    Phase.EVIDENCE_GATHERING: "testing",
    Phase.REVISION: "testing",
    Phase.SYNTHESIS: "synthesis",
    Phase.COMPLETE: "synthesis",
}


def as_phase(value: Phase | str | None) -> Phase | None:
    if isinstance(value, Phase):
        return value
    try:
        return Phase(value)
    except ValueError:
        return None


def label(value) -> str:
    return value.value if isinstance(value, Phase) else str(value)


def is_valid_transition(source: Phase | str, target: Phase | str) -> bool:
    source_phase, target_phase = as_phase(source), as_phase(target)
    if source_phase is None or target_phase is None:
        return False
    return target_phase in ALLOWED_JUMPS[source_phase]


def phase_name(phase: Phase | str) -> str:
    known = as_phase(phase)
    return PHASE_NAMES[known] if known else str(phase)


def phase_description(phase: Phase | str) -> str:
    known = as_phase(phase)
    return PHASE_DESCRIPTIONS[known] if known else ""


def phase_symbol(phase: Phase | str) -> str | None:
    known = as_phase(phase)
    return OPERATOR_SYMBOLS.get(known) if known else None


def simplified_phase(phase: Phase | str) -> str | None:
    """Collapse the 11 phases into intake, refinement, testing and synthesis."""
    known = as_phase(phase)
    return SIMPLIFIED_PHASES[known] if known else None
