import re

from brenner.core.models import ALL_ROLES, Role

ROLE_SHORTHANDS: dict[str, Role] = {
    "opus": Role.TEST_DESIGNER,
    "claude": Role.TEST_DESIGNER,
    "claude_code": Role.TEST_DESIGNER,
    "gpt": Role.HYPOTHESIS_GENERATOR,
    "codex": Role.HYPOTHESIS_GENERATOR,
    "codex_cli": Role.HYPOTHESIS_GENERATOR,
    "human": Role.HYPOTHESIS_GENERATOR,
    "research_collaborator": Role.HYPOTHESIS_GENERATOR,
    "gemini": Role.ADVERSARIAL_CRITIC,
    "gemini_cli": Role.ADVERSARIAL_CRITIC,
}

DISPLAY_NAMES: dict[Role, str] = {
    Role.HYPOTHESIS_GENERATOR: "Hypothesis Generator",
    Role.TEST_DESIGNER: "Test Designer",
    Role.ADVERSARIAL_CRITIC: "Adversarial Critic",
}

# Tag each role is asked to put in its DELTA[...] subject
DELTA_TAGS: dict[Role, str] = {
    Role.HYPOTHESIS_GENERATOR: "gpt",
    Role.TEST_DESIGNER: "opus",
    Role.ADVERSARIAL_CRITIC: "gemini",
}

_SEPARATORS = re.compile(r"[\s-]+")
_INVALID = re.compile(r"[^a-z0-9_]")


def normalize_token(token: str) -> str:
    text = _SEPARATORS.sub("_", token.strip().lower())
    return _INVALID.sub("", text)


def _build_vocabulary() -> dict[str, Role]:
    vocabulary = dict(ROLE_SHORTHANDS)
    for role in ALL_ROLES:
        vocabulary[role.value] = role
        vocabulary[role.value.replace("_", "")] = role
    return vocabulary


ROLE_VOCABULARY = _build_vocabulary()


def role_for_token(token: str | None) -> Role | None:
    """Map a subject role token (shorthand or canonical name) to a role."""
    if not token:
        return None
    return ROLE_VOCABULARY.get(normalize_token(token))


def display_name(role: Role | str) -> str:
    role = Role(role)
    return DISPLAY_NAMES[role]


def infer_role_from_program(program: str | None) -> Role | None:
    """Guess a role from an agent's program or display name."""
    if not program:
        return None
    lowered = program.lower()
    if "claude" in lowered or "opus" in lowered:
        return Role.TEST_DESIGNER
    if "codex" in lowered or "gpt" in lowered:
        return Role.HYPOTHESIS_GENERATOR
    if "gemini" in lowered:
        return Role.ADVERSARIAL_CRITIC
    return None
